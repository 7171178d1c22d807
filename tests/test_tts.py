"""Tests for narration generation."""

import os
from unittest.mock import MagicMock, patch

import pytest

from storybook_video.errors import NarrationFailed
from storybook_video.models import Story, StoryPage
from storybook_video.tts import VOICE_POOL, generate_narration, generate_single, narration_filename


def _make_mock_communicate(calls=None):
    """Create a mock edge_tts.Communicate that writes a few bytes."""
    def factory(text, voice, **kwargs):
        if calls is not None:
            calls.append((text, voice, kwargs))
        mock = MagicMock()
        async def save(path):
            with open(path, "wb") as f:
                f.write(b"ID3-fake-mp3")
        mock.save = save
        return mock
    return factory


@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_single(mock_comm, tmp_path):
    output = tmp_path / "page.mp3"
    mock_comm.side_effect = _make_mock_communicate()
    generate_single("Hello world", "en-US-JennyNeural", str(output))
    assert output.exists()
    assert output.stat().st_size > 0


@patch("storybook_video.tts.time.sleep")
@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_single_retry(mock_comm, mock_sleep, tmp_path):
    """Retry works when the first attempt fails."""
    output = tmp_path / "page.mp3"
    call_count = 0

    def fail_then_succeed(text, voice, **kwargs):
        nonlocal call_count
        call_count += 1
        mock = MagicMock()
        if call_count == 1:
            async def fail_save(path):
                raise Exception("Network error")
            mock.save = fail_save
        else:
            async def ok_save(path):
                with open(path, "wb") as f:
                    f.write(b"ok")
            mock.save = ok_save
        return mock

    mock_comm.side_effect = fail_then_succeed
    generate_single("Hello", "en-US-JennyNeural", str(output))
    assert call_count == 2
    mock_sleep.assert_called_once_with(1.0)


@patch("storybook_video.tts.time.sleep")
@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_single_zero_byte_exhausts_retries(mock_comm, mock_sleep, tmp_path):
    def empty(text, voice, **kwargs):
        mock = MagicMock()
        async def save(path):
            open(path, "wb").close()
        mock.save = save
        return mock

    mock_comm.side_effect = empty
    with pytest.raises(NarrationFailed, match="0-byte"):
        generate_single("Hello", "en-US-JennyNeural", str(tmp_path / "page.mp3"))
    assert mock_comm.call_count == 3


@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_narration_in_page_order(mock_comm, tmp_path):
    calls = []
    mock_comm.side_effect = _make_mock_communicate(calls)
    story = Story(title="T", pages=[StoryPage(text="One."), StoryPage(text="Two.")])
    paths = generate_narration(story, str(tmp_path / "narration"), voice="en-GB-SoniaNeural")
    assert [os.path.basename(p) for p in paths] == ["page_000.mp3", "page_001.mp3"]
    assert [c[0] for c in calls] == ["One.", "Two."]
    assert all(c[1] == "en-GB-SoniaNeural" for c in calls)


@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_narration_skips_existing(mock_comm, tmp_path, capsys):
    calls = []
    mock_comm.side_effect = _make_mock_communicate(calls)
    out = tmp_path / "narration"
    out.mkdir()
    (out / narration_filename(0)).write_bytes(b"already here")
    story = Story(title="T", pages=[StoryPage(text="One."), StoryPage(text="Two.")])
    generate_narration(story, str(out))
    assert [c[0] for c in calls] == ["Two."]
    assert (out / "page_000.mp3").read_bytes() == b"already here"
    assert "[skip]" in capsys.readouterr().out


@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_narration_uses_prerecorded_audio(mock_comm, tmp_path):
    (tmp_path / "voice.mp3").write_bytes(b"recorded by grandma")
    story = Story(title="T", pages=[StoryPage(text="One.", audio="voice.mp3")])
    paths = generate_narration(story, str(tmp_path / "narration"), base_dir=str(tmp_path))
    mock_comm.assert_not_called()
    with open(paths[0], "rb") as f:
        assert f.read() == b"recorded by grandma"


@patch("storybook_video.tts.edge_tts.Communicate")
def test_generate_narration_missing_prerecorded_audio(mock_comm, tmp_path):
    story = Story(title="T", pages=[StoryPage(text="One."), StoryPage(text="Two.", audio="nope.mp3")])
    mock_comm.side_effect = _make_mock_communicate()
    with pytest.raises(NarrationFailed, match="page 2"):
        generate_narration(story, str(tmp_path / "narration"), base_dir=str(tmp_path))
    assert not (tmp_path / "narration" / "page_001.mp3").exists()


def test_voice_pool():
    assert "en-US-JennyNeural" in VOICE_POOL
    assert len(VOICE_POOL) == len(set(VOICE_POOL))
