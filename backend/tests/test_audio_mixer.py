"""
Tests for the audio stage of the export graph.

Test cases:
1. Per-clip trim mirrors the video trims
2. Clip audio crossfades with the video transition
3. Music loop, volume and fades over the timeline
4. Plain mix vs sidechain ducking
5. Split-screen volume balance
"""

import pytest

from reelforge.render.audio_mixer import AudioMixer, ducking_ratio
from reelforge.render.graph import FilterGraph
from reelforge.schemas.scene import BackgroundMusicSpec, ClipSpec


def _clips(*durations):
    return tuple(ClipSpec(file_path=f"/tmp/{i}.mp4", duration_seconds=d, trim_start_seconds=i) for i, d in enumerate(durations))


class TestDuckingRatio:
    @pytest.mark.parametrize("amount,ratio", [(0, 2), (50, 6), (100, 10), (25, 4), (-5, 2), (150, 10)])
    def test_linear_ratio(self, amount, ratio):
        assert ducking_ratio(amount) == pytest.approx(ratio)


class TestClipAudio:
    def test_trim_and_concat(self):
        graph = FilterGraph(input_count=3)
        out = AudioMixer(graph).clip_audio(_clips(5, 6, 7))
        program = graph.render()
        assert "[0:a]atrim=start=0:duration=5,asetpts=PTS-STARTPTS[ca0]" in program
        assert "[1:a]atrim=start=1:duration=6,asetpts=PTS-STARTPTS[ca1]" in program
        assert f"[ca0][ca1][ca2]concat=n=3:v=0:a=1[{out}]" in program

    def test_crossfade_matches_video_transition(self):
        graph = FilterGraph(input_count=2)
        AudioMixer(graph).clip_audio(_clips(6, 6), transition_duration=1.5)
        program = graph.render()
        assert "acrossfade=d=1.5" in program
        assert "concat" not in program

    def test_single_clip(self):
        graph = FilterGraph(input_count=1)
        out = AudioMixer(graph).clip_audio(_clips(5))
        assert out == "ca0"


class TestMusic:
    def test_loop_volume_and_fades(self):
        graph = FilterGraph(input_count=4)
        music = BackgroundMusicSpec(file_path="/tmp/m.mp3", volume_percent=30, fade_in=True, fade_out=True)
        AudioMixer(graph).music(3, music, 15)
        assert graph.render() == (
            "[3:a]aloop=loop=-1:size=2e+09,atrim=duration=15,asetpts=PTS-STARTPTS,volume=0.3,"
            "afade=t=in:st=0:d=2,afade=t=out:st=13:d=2[bgm0]"
        )

    def test_no_fades(self):
        graph = FilterGraph(input_count=1)
        AudioMixer(graph).music(0, BackgroundMusicSpec(file_path="/tmp/m.mp3"), 10)
        program = graph.render()
        assert "volume=0.5" in program
        assert "afade" not in program

    def test_short_timeline_fade(self):
        graph = FilterGraph(input_count=1)
        music = BackgroundMusicSpec(file_path="/tmp/m.mp3", fade_out=True)
        AudioMixer(graph).music(0, music, 1.5)
        assert "afade=t=out:st=0:d=1.5" in graph.render()


class TestMixing:
    def test_plain_mix(self):
        graph = FilterGraph(input_count=2)
        mixer = AudioMixer(graph)
        clip = mixer.clip_audio(_clips(5))
        bgm = mixer.music(1, BackgroundMusicSpec(file_path="/tmp/m.mp3"), 5)
        out = mixer.mix(clip, bgm)
        assert f"[{clip}][{bgm}]amix=inputs=2:duration=first[{out}]" in graph.render()
        assert graph.validate([out])

    def test_ducking(self):
        graph = FilterGraph(input_count=2)
        mixer = AudioMixer(graph)
        clip = mixer.clip_audio(_clips(5))
        bgm = mixer.music(1, BackgroundMusicSpec(file_path="/tmp/m.mp3"), 5)
        out = mixer.duck(clip, bgm, 75)
        program = graph.render()
        assert "asplit=2" in program
        assert "sidechaincompress=threshold=0.1:ratio=8:attack=10:release=100" in program
        assert "amix=inputs=2:duration=first" in program
        # clip audio is split so every label is consumed exactly once
        assert graph.validate([out])


class TestSplitScreenAudio:
    def test_balanced_mix(self):
        graph = FilterGraph(input_count=2)
        out = AudioMixer(graph).split_screen(1.0, 0.1)
        assert graph.render() == (
            f"[0:a]volume=1[main0];[1:a]volume=0.1[bga1];[main0][bga1]amix=inputs=2:duration=longest[{out}]"
        )

    def test_muted_background_uses_main_only(self):
        graph = FilterGraph(input_count=2)
        out = AudioMixer(graph).split_screen(0.8, 0)
        assert graph.render() == f"[0:a]volume=0.8[{out}]"
