from voice_assessment.utils.audio import AudioBuffer, decode_audio_base64, encode_audio_base64


def test_base64_helpers():
    assert encode_audio_base64(b"\x00\x01") == "AAE="
    assert decode_audio_base64("AAE=") == b"\x00\x01"
    assert decode_audio_base64("not base64!") is None


def test_buffer_keeps_head_when_full():
    buffer = AudioBuffer(max_bytes=5)

    buffer.add(b"abc")
    buffer.add(b"def")
    buffer.add(b"gh")

    assert buffer.get_all() == b"abc"
    assert buffer.truncated
    assert buffer.total_bytes_received == 8

    buffer.clear()
    assert buffer.size_bytes() == 0
    assert not buffer.truncated
