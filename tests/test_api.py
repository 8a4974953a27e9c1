import json
import unittest

from fastapi.testclient import TestClient

from factcheck.main import app, get_openai_client
from factcheck.services.openai_client import OpenAIClient
from factcheck.session_store import create_session
from tests.helpers import FakeOpenAI, make_settings

PCM_THREE_SECONDS = b"\x00\x00" * 16000 * 3


class ApiTestCase(unittest.TestCase):
    api_key = "sk-test"

    def setUp(self):
        self.fake = FakeOpenAI()
        client = OpenAIClient(make_settings(OPENAI_API_KEY=self.api_key), transport=self.fake.transport())
        app.dependency_overrides[get_openai_client] = lambda: client
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestHealth(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


class TestTranscribe(ApiTestCase):
    def test_transcript(self):
        self.fake.transcript = " Ziemia jest płaska. "
        resp = self.client.post(
            "/api/transcribe",
            files={"audio": ("recording.webm", b"\x1aE\xdf\xa3webm", "audio/webm;codecs=opus")},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"transcript": "Ziemia jest płaska."})
        upload = self.fake.requests[0]
        self.assertTrue(upload.url.path.endswith("/audio/transcriptions"))
        self.assertIn(b"whisper-1", upload.content)
        self.assertIn(b'filename="recording.webm"', upload.content)

    def test_silence(self):
        self.fake.transcript = ""
        resp = self.client.post("/api/transcribe", files={"audio": ("a.wav", b"RIFF", "audio/wav")})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"transcript": ""})

    def test_no_audio(self):
        resp = self.client.post("/api/transcribe", files={"other": ("a.wav", b"RIFF", "audio/wav")})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "No audio file provided")
        self.assertEqual(self.fake.requests, [])

    def test_unsupported_type(self):
        resp = self.client.post("/api/transcribe", files={"audio": ("a.txt", b"hello", "text/plain")})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Unsupported audio type")

    def test_empty_audio(self):
        resp = self.client.post("/api/transcribe", files={"audio": ("a.wav", b"", "audio/wav")})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Empty audio file")

    def test_provider_error(self):
        self.fake.status_code = 413
        self.fake.error_message = "Maximum content size limit exceeded"
        resp = self.client.post("/api/transcribe", files={"audio": ("a.wav", b"RIFF", "audio/wav")})
        self.assertEqual(resp.status_code, 413)
        self.assertEqual(
            resp.json(),
            {"error": "OpenAI API Error: 413", "details": "Maximum content size limit exceeded"},
        )

    def test_response_without_text(self):
        self.fake.transcript = None
        resp = self.client.post("/api/transcribe", files={"audio": ("a.wav", b"RIFF", "audio/wav")})
        self.assertEqual(resp.status_code, 500)
        self.assertIn("error", resp.json())


class TestDetectClaims(ApiTestCase):
    def test_claims(self):
        self.fake.claims = json.dumps({"claims": ["Woda wrze w 100 stopniach Celsjusza."]})
        resp = self.client.post(
            "/api/detect-claims",
            json={"text": "Woda wrze w 100 stopniach Celsjusza. Czy to prawda?"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"claims": ["Woda wrze w 100 stopniach Celsjusza."]})

    def test_no_claims_key(self):
        self.fake.claims = json.dumps({"result": "none"})
        resp = self.client.post("/api/detect-claims", json={"text": "Czy to prawda?"})
        self.assertEqual(resp.json(), {"claims": []})

    def test_unparseable_model_output(self):
        self.fake.claims = "no claims here"
        resp = self.client.post("/api/detect-claims", json={"text": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Failed to parse claims from AI response")

    def test_missing_text(self):
        resp = self.client.post("/api/detect-claims", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], 'Invalid input: "text" field is required and must be a string.')
        self.assertEqual(self.fake.requests, [])

    def test_text_not_a_string(self):
        resp = self.client.post("/api/detect-claims", json={"text": 5})
        self.assertEqual(resp.status_code, 400)

    def test_empty_text(self):
        resp = self.client.post("/api/detect-claims", json={"text": ""})
        self.assertEqual(resp.status_code, 400)

    def test_provider_error(self):
        self.fake.status_code = 401
        self.fake.error_message = "Incorrect API key provided"
        resp = self.client.post("/api/detect-claims", json={"text": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "OpenAI API Error: 401")


class TestFactCheck(ApiTestCase):
    def test_verdict(self):
        self.fake.verdict = json.dumps(
            {"status": "false", "explanation": "Ziemia jest kulista.", "source": "https://pl.wikipedia.org/wiki/Ziemia"}
        )
        resp = self.client.post("/api/fact-check", json={"claim": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "false")
        self.assertEqual(body["explanation"], "Ziemia jest kulista.")
        self.assertEqual(body["source"], "https://pl.wikipedia.org/wiki/Ziemia")
        self.assertNotIn("error", body)

    def test_success_body_keeps_null_source(self):
        resp = self.client.post("/api/fact-check", json={"claim": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "true", "explanation": "OK.", "source": None})

    def test_unparseable_model_output_is_soft_uncertain(self):
        self.fake.verdict = "It is false."
        resp = self.client.post("/api/fact-check", json={"claim": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "uncertain")
        self.assertIn("Failed to parse", resp.json()["explanation"])

    def test_invalid_status_is_soft_uncertain(self):
        self.fake.verdict = json.dumps({"status": "mostly", "explanation": "Depends."})
        resp = self.client.post("/api/fact-check", json={"claim": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "uncertain")

    def test_provider_error_has_uncertain_body(self):
        self.fake.status_code = 429
        resp = self.client.post("/api/fact-check", json={"claim": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 429)
        body = resp.json()
        self.assertEqual(body["status"], "uncertain")
        self.assertEqual(body["error"], "OpenAI API Error: 429")
        self.assertIn("Rate limit reached", body["explanation"])

    def test_missing_claim(self):
        resp = self.client.post("/api/fact-check", json={"text": "Ziemia jest płaska."})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], 'Invalid input: "claim" field is required and must be a string.')


class TestMissingApiKey(ApiTestCase):
    api_key = ""

    def test_every_endpoint_fails_before_remote_call(self):
        responses = [
            self.client.post("/api/transcribe", files={"audio": ("a.wav", b"RIFF", "audio/wav")}),
            self.client.post("/api/detect-claims", json={"text": "Ziemia jest płaska."}),
            self.client.post("/api/fact-check", json={"claim": "Ziemia jest płaska."}),
        ]
        for resp in responses:
            self.assertEqual(resp.status_code, 500)
            self.assertEqual(resp.json(), {"error": "OpenAI API key not configured"})
        self.assertEqual(self.fake.requests, [])

    def test_missing_key_wins_over_invalid_fields(self):
        resp = self.client.post("/api/detect-claims", json={"text": 5})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "OpenAI API key not configured"})

    def test_body_that_is_not_json_is_rejected_first(self):
        resp = self.client.post(
            "/api/fact-check",
            content=b"Ziemia jest p\xc5\x82aska.",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid input: request body must be a JSON object.")
        self.assertEqual(self.fake.requests, [])

    def test_websocket_reports_configuration_error(self):
        with self.client.websocket_connect("/ws/session") as ws:
            message = ws.receive_json()
        self.assertEqual(message["type"], "error")
        self.assertEqual(message["stage"], "configuration")


class TestWebSocketSession(ApiTestCase):
    def test_full_session(self):
        self.fake.transcript = "Woda wrze w 100 stopniach Celsjusza. Czy to prawda?"
        self.fake.claims = json.dumps({"claims": ["Woda wrze w 100 stopniach Celsjusza."]})
        self.fake.verdict = json.dumps({"status": "true", "explanation": "Na poziomie morza tak.", "source": None})

        messages = []
        with self.client.websocket_connect("/ws/session") as ws:
            hello = ws.receive_json()
            self.assertEqual(hello["type"], "session")
            ws.send_bytes(PCM_THREE_SECONDS)
            ws.send_text(json.dumps({"type": "stop"}))
            while True:
                message = ws.receive_json()
                messages.append(message)
                if message["type"] == "stopped":
                    break

        types = [m["type"] for m in messages]
        self.assertIn("transcript", types)
        self.assertLess(types.index("claim_pending"), types.index("claim_resolved"))
        resolved = next(m for m in messages if m["type"] == "claim_resolved")
        self.assertEqual(resolved["id"], "claim-1")
        self.assertEqual(resolved["status"], "true")

        session = messages[-1]["session"]
        self.assertTrue(session["finalized"])
        self.assertEqual(session["transcript"], "Woda wrze w 100 stopniach Celsjusza. Czy to prawda?")
        self.assertEqual(session["summary"]["total"], 1)
        self.assertEqual(session["summary"]["false_percentage"], "0.0")

        # Whisper got one standalone WAV segment
        uploads = [r for r in self.fake.requests if r.url.path.endswith("/audio/transcriptions")]
        self.assertEqual(len(uploads), 1)
        self.assertIn(b'filename="segment-0.wav"', uploads[0].content)

        snapshot = self.client.get(f"/api/sessions/{hello['session_id']}")
        self.assertEqual(snapshot.status_code, 200)
        self.assertEqual(snapshot.json()["results"][0]["status"], "true")

    def test_unknown_session(self):
        resp = self.client.get("/api/sessions/doesnotexist")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Session not found"})

    def test_delete_session(self):
        session_id, _ = create_session()

        self.assertEqual(self.client.delete(f"/api/sessions/{session_id}").status_code, 204)
        self.assertEqual(self.client.get(f"/api/sessions/{session_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/sessions/{session_id}").status_code, 404)


if __name__ == "__main__":
    unittest.main()
