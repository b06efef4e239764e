"""
Audio stage of the export filter graph, with BGM ducking support.

This module handles:
- Per-clip audio trim/retime mirroring the video trims
- Background music looping, volume and fades over the whole timeline
- Plain two-input mixing or sidechain ducking of the music under clip audio
- Main/background volume balance for split-screen videos

The audio chain is independent of the video chain; the two only meet at
mux time through their ``-map`` labels.
"""

import logging

from reelforge.render.graph import FilterGraph, format_number, input_pad
from reelforge.schemas.scene import BackgroundMusicSpec, ClipSpec

logger = logging.getLogger(__name__)

MUSIC_FADE_S = 2.0
# aloop needs a finite buffer size; this is effectively "the whole file"
MUSIC_LOOP_SIZE = "2e+09"


def ducking_ratio(amount_percent: float) -> float:
    """Compression ratio for a 0-100 ducking amount: 2 at 0, 10 at 100."""
    amount = max(0.0, min(100.0, amount_percent)) / 100
    return 2 + amount * 8


class AudioMixer:
    """Emits audio statements into a FilterGraph."""

    def __init__(self, graph: FilterGraph):
        self.graph = graph

    def clip_audio(
        self,
        clips: tuple[ClipSpec, ...],
        transition_duration: float = 0.0,
    ) -> str:
        """Trim each clip's audio (inputs 0..N-1) and join them in order.

        With a transition the clips are crossfaded by the same amount as the
        video so both chains end up the same length.
        """
        labels = []
        for index, clip in enumerate(clips):
            labels.append(
                self.graph.add(
                    [input_pad(index, "a")],
                    [
                        f"atrim=start={format_number(clip.trim_start_seconds)}"
                        f":duration={format_number(clip.duration_seconds)}",
                        "asetpts=PTS-STARTPTS",
                    ],
                    stem="ca",
                )
            )

        if len(labels) == 1:
            return labels[0]
        if transition_duration <= 0:
            return self.graph.add(labels, f"concat=n={len(labels)}:v=0:a=1", stem="cat")

        current = labels[0]
        for label in labels[1:]:
            current = self.graph.add(
                [current, label],
                f"acrossfade=d={format_number(transition_duration)}",
                stem="acf",
            )
        return current

    def music(self, input_index: int, music: BackgroundMusicSpec, duration: float) -> str:
        """Loop the music to the timeline length, then apply volume and fades."""
        chain = [
            f"aloop=loop=-1:size={MUSIC_LOOP_SIZE}",
            f"atrim=duration={format_number(duration)}",
            "asetpts=PTS-STARTPTS",
            f"volume={format_number(music.volume_percent / 100)}",
        ]
        fade = min(MUSIC_FADE_S, duration)
        if music.fade_in:
            chain.append(f"afade=t=in:st=0:d={format_number(fade)}")
        if music.fade_out:
            chain.append(f"afade=t=out:st={format_number(max(0.0, duration - fade))}:d={format_number(fade)}")
        return self.graph.add([input_pad(input_index, "a")], chain, stem="bgm")

    def mix(self, clip_audio: str, music: str) -> str:
        """Plain mix; the clip audio comes first and sets the output length."""
        return self.graph.add([clip_audio, music], "amix=inputs=2:duration=first", stem="amix")

    def duck(self, clip_audio: str, music: str, amount_percent: float) -> str:
        """Compress the music whenever clip audio is present, then mix."""
        voice, key = self.graph.add([clip_audio], "asplit=2", stem="sc", outputs=2)
        ratio = format_number(ducking_ratio(amount_percent))
        ducked = self.graph.add(
            [music, key],
            f"sidechaincompress=threshold=0.1:ratio={ratio}:attack=10:release=100",
            stem="duck",
        )
        logger.info(f"[AUDIO MIX] Ducking music with ratio={ratio}")
        return self.mix(voice, ducked)

    def split_screen(self, main_volume: float, background_volume: float) -> str:
        """Main video audio (input 0) balanced against the background video (input 1)."""
        main = self.graph.add([input_pad(0, "a")], f"volume={format_number(main_volume)}", stem="main")
        if background_volume <= 0:
            return main
        background = self.graph.add(
            [input_pad(1, "a")], f"volume={format_number(background_volume)}", stem="bga"
        )
        return self.graph.add([main, background], "amix=inputs=2:duration=longest", stem="amix")
