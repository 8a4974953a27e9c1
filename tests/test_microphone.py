import asyncio
import unittest
from unittest import mock

from factcheck.errors import MicrophonePermissionError, NoAudioDeviceError, RecordingError

try:
    from factcheck.audio import microphone
except OSError:  # PortAudio library not installed
    microphone = None


@unittest.skipIf(microphone is None, "PortAudio not available")
class TestClassifyAudioError(unittest.TestCase):
    def test_permission(self):
        err = microphone.classify_audio_error(Exception("Error opening InputStream: Permission denied"))
        self.assertIsInstance(err, MicrophonePermissionError)

    def test_no_device(self):
        err = microphone.classify_audio_error(Exception("Error querying device -1"))
        self.assertIsInstance(err, NoAudioDeviceError)

    def test_other(self):
        err = microphone.classify_audio_error(Exception("Internal PortAudio error"))
        self.assertIs(type(err), RecordingError)
        self.assertIn("Error accessing microphone", str(err))


@unittest.skipIf(microphone is None, "PortAudio not available")
class TestCheckInputDevice(unittest.TestCase):
    def test_query_fails(self):
        with mock.patch.object(
            microphone.sd, "query_devices", side_effect=microphone.sd.PortAudioError("Error querying device -1")
        ):
            with self.assertRaises(NoAudioDeviceError):
                microphone.check_input_device()

    def test_no_input_channels(self):
        with mock.patch.object(microphone.sd, "query_devices", return_value={"name": "HDMI", "max_input_channels": 0}):
            with self.assertRaises(NoAudioDeviceError):
                microphone.check_input_device("3")

    def test_device_found(self):
        info = {"name": "Built-in Microphone", "max_input_channels": 1}
        with mock.patch.object(microphone.sd, "query_devices", return_value=info) as query:
            self.assertEqual(microphone.check_input_device("2"), info)
        query.assert_called_once_with(2, kind="input")


@unittest.skipIf(microphone is None, "PortAudio not available")
class TestMicrophoneSource(unittest.IsolatedAsyncioTestCase):
    async def test_blocks_delivered_until_close(self):
        info = {"name": "Built-in Microphone", "max_input_channels": 1}
        stream = mock.MagicMock()
        with mock.patch.object(microphone.sd, "query_devices", return_value=info), \
                mock.patch.object(microphone.sd, "RawInputStream", return_value=stream) as factory:
            source = microphone.MicrophoneSource(sample_rate=16000, channels=1, block_ms=20)
            source.open()

        self.assertEqual(factory.call_args.kwargs["blocksize"], 320)
        self.assertEqual(factory.call_args.kwargs["dtype"], "int16")
        stream.start.assert_called_once()

        source._callback(b"\x01\x00" * 320, 320, None, None)
        source._callback(b"\x02\x00" * 320, 320, None, None)
        await asyncio.sleep(0)
        source.close()

        blocks = [block async for block in source.frames()]
        self.assertEqual(blocks, [b"\x01\x00" * 320, b"\x02\x00" * 320])
        stream.stop.assert_called_once()
        stream.close.assert_called_once()

    async def test_open_failure_is_classified(self):
        info = {"name": "Built-in Microphone", "max_input_channels": 1}
        with mock.patch.object(microphone.sd, "query_devices", return_value=info), \
                mock.patch.object(
                    microphone.sd, "RawInputStream", side_effect=microphone.sd.PortAudioError("Permission denied")
                ):
            source = microphone.MicrophoneSource()
            with self.assertRaises(MicrophonePermissionError):
                source.open()


if __name__ == "__main__":
    unittest.main()
