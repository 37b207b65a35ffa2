import numpy as np
import pytest

from apehost.audio_file import AudioFile
from apehost.audio_writer import BUFFER_SIZE, WAV_FORMAT, OutputFileManager


def stereo_block():
    return np.array([[0.25, -0.5, 0.125, 0.0], [1.0, 0.0, -1.0, 0.5]], dtype=np.float32)


def test_format_is_chosen_by_extension():
    assert OutputFileManager.select_format("take.wav") is WAV_FORMAT
    assert OutputFileManager.select_format("TAKE.WAV") is WAV_FORMAT
    assert OutputFileManager.select_format("take.mp3") is None


def test_float_output_round_trips_exactly(tmp_path):
    path = tmp_path / "out.wav"
    data = stereo_block()

    with OutputFileManager.create_producer(path, 48000, 2, 32, 0) as producer:
        assert producer.write(data) is True

    audio = AudioFile.from_path(path)
    assert audio.sample_rate == 48000.0
    assert np.array_equal(audio.data, data)


@pytest.mark.parametrize("bits", [8, 16, 24])
def test_integer_output_round_trips_within_one_step(tmp_path, bits):
    path = tmp_path / f"out{bits}.wav"
    rng = np.random.default_rng(bits)
    data = rng.uniform(-1, 1, size=(2, 301)).astype(np.float32)

    with OutputFileManager.create_producer(path, 44100, 2, bits, 0) as producer:
        assert producer.write(data)

    audio = AudioFile.from_path(path)
    assert audio.samples == data.shape[1]
    assert np.allclose(audio.data, data, atol=1.0 / (1 << (bits - 1)))


def test_blocks_are_written_in_order(tmp_path):
    path = tmp_path / "joined.wav"
    first = stereo_block()
    second = -stereo_block()

    with OutputFileManager.create_producer(path, 8000, 2, 32, 0) as producer:
        assert producer.write(first)
        assert producer.write(second)

    audio = AudioFile.from_path(path)
    assert np.array_equal(audio.data, np.concatenate([first, second], axis=1))


def test_mono_data_may_be_one_dimensional(tmp_path):
    path = tmp_path / "mono.wav"
    samples = [0.5, -0.25, 0.75]

    with OutputFileManager.create_producer(path, 22050, 1, 32, 0) as producer:
        assert producer.write(samples)

    assert AudioFile.from_path(path).data[0].tolist() == samples


def test_loud_samples_are_clipped(tmp_path):
    path = tmp_path / "clip.wav"
    with OutputFileManager.create_producer(path, 8000, 1, 16, 0) as producer:
        producer.write([[3.0, -3.0, 0.0]])

    data = AudioFile.from_path(path).data
    assert data.max() <= 1.0
    assert data.min() >= -1.0
    assert data[0, 0] > data[0, 2] > data[0, 1]


def test_oversized_write_is_refused(tmp_path):
    path = tmp_path / "big.wav"
    with OutputFileManager.create_producer(path, 8000, 1, 16, 0) as producer:
        assert producer.write(np.zeros((1, BUFFER_SIZE + 1))) is False

    assert AudioFile.from_path(path).samples == 0


def test_wrong_channel_count_is_rejected(tmp_path):
    with OutputFileManager.create_producer(tmp_path / "c.wav", 8000, 2, 16, 0) as producer:
        with pytest.raises(ValueError):
            producer.write(np.zeros((3, 10)))


def test_writing_after_close_fails(tmp_path):
    producer = OutputFileManager.create_producer(tmp_path / "done.wav", 8000, 1, 16, 0)
    producer.close()
    producer.close()
    assert producer.closed is True
    with pytest.raises(ValueError):
        producer.write([0.0])


def test_unknown_extension_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        OutputFileManager.create_producer(tmp_path / "out.xyz", 8000, 1, 16, 0)


def test_unsupported_bit_depth_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        OutputFileManager.create_producer(tmp_path / "out.wav", 8000, 1, 12, 0)


def test_unwritable_location_is_reported(tmp_path):
    with pytest.raises(OSError):
        OutputFileManager.create_producer(tmp_path / "missing" / "out.wav", 8000, 1, 16, 0)