from reelforge.render.audio_mixer import AudioMixer
from reelforge.render.command import CommandAssembler, CompiledProgram
from reelforge.render.graph import FilterGraph, lint_program
from reelforge.render.job import RenderJob
from reelforge.render.pipeline import FilterGraphBuilder, build_command, compile_scene, run_export
from reelforge.render.quality import QUALITY_PROFILES, QualityProfile, get_quality_profile
from reelforge.render.supervisor import ProcessSupervisor, SupervisorState

__all__ = [
    "AudioMixer",
    "CommandAssembler",
    "CompiledProgram",
    "FilterGraph",
    "FilterGraphBuilder",
    "ProcessSupervisor",
    "QUALITY_PROFILES",
    "QualityProfile",
    "RenderJob",
    "SupervisorState",
    "build_command",
    "compile_scene",
    "get_quality_profile",
    "lint_program",
    "run_export",
]
