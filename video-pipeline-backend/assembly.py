"""
Filter-graph construction and thin ffmpeg-python wrappers used to assemble
the final video: Ken Burns clips from still images, clip normalization,
concat demuxer runs, global speed matching and voiceover mixing.
"""

import math
import logging
from typing import List, Tuple

import ffmpeg

from config import (
    FPS,
    OUTPUT_WIDTH,
    OUTPUT_HEIGHT,
    KENBURNS_PRESCALE_WIDTH,
    SPEED_MATCH_TOLERANCE,
    BACKGROUND_AUDIO_VOLUME,
    VOICEOVER_VOLUME,
    AUDIO_SAMPLE_RATE,
    AUDIO_BITRATE,
)
from errors import AssemblyError

MOTION_STYLES = ["zoom_in", "zoom_out", "pan_right", "pan_left"]

# atempo only accepts factors in this range per stage
ATEMPO_MIN = 0.5
ATEMPO_MAX = 2.0


# --------------------------------------------------------------------------
# --- Pure helpers ---
# --------------------------------------------------------------------------

def motion_style(index: int) -> str:
    """Cycle through the motion styles for 1-based segment numbers."""
    return MOTION_STYLES[(index - 1) % len(MOTION_STYLES)]


def frame_count(duration: float, fps: int = FPS) -> int:
    return max(math.ceil(duration * fps), 1)


def kenburns_filter(style: str, frames: int, width: int = OUTPUT_WIDTH,
                    height: int = OUTPUT_HEIGHT, fps: int = FPS) -> str:
    """
    Video filter that turns one still image into `frames` frames of pan/zoom.
    The image is upscaled first so the zoompan crop does not jitter.
    """
    center_x = "'iw/2-(iw/zoom/2)'"
    center_y = "'ih/2-(ih/zoom/2)'"
    if style == "zoom_in":
        zoom, x, y = "'min(zoom+0.0015,1.5)'", center_x, center_y
    elif style == "zoom_out":
        zoom, x, y = "'if(lte(zoom,1.0),1.5,max(1.001,zoom-0.0015))'", center_x, center_y
    elif style == "pan_right":
        zoom, x, y = "1.3", f"'(iw-iw/zoom)*on/{frames}'", "'(ih-ih/zoom)/2'"
    elif style == "pan_left":
        zoom, x, y = "1.3", f"'(iw-iw/zoom)*(1-on/{frames})'", "'(ih-ih/zoom)/2'"
    else:
        raise ValueError(f"Unknown motion style: {style}")

    return (
        f"scale={KENBURNS_PRESCALE_WIDTH}:-1,"
        f"zoompan=z={zoom}:d={frames}:s={width}x{height}:x={x}:y={y}:fps={fps},"
        "setsar=1"
    )


def speed_factor(video_duration: float, audio_duration: float) -> float:
    """Playback speed that makes the video last as long as the audio."""
    if audio_duration <= 0:
        raise ValueError("audio duration must be positive")
    return video_duration / audio_duration


def needs_speed_match(video_duration: float, audio_duration: float,
                      tolerance: float = SPEED_MATCH_TOLERANCE) -> bool:
    return audio_duration > 0 and abs(video_duration - audio_duration) > tolerance


def setpts_filter(factor: float) -> str:
    # Speeding up by `factor` divides every timestamp by it
    return f"setpts=PTS*{1 / factor:.6f}"


def atempo_chain(factor: float) -> List[str]:
    """atempo stages, each within [0.5, 2.0], whose product is `factor`."""
    if factor <= 0:
        raise ValueError("speed factor must be positive")
    stages = []
    remaining = factor
    while remaining > ATEMPO_MAX:
        stages.append(ATEMPO_MAX)
        remaining /= ATEMPO_MAX
    while remaining < ATEMPO_MIN:
        stages.append(ATEMPO_MIN)
        remaining /= ATEMPO_MIN
    stages.append(remaining)
    return [f"atempo={stage:.6f}" for stage in stages]


def silence_source(sample_rate: int = AUDIO_SAMPLE_RATE, channels: int = 2) -> str:
    layout = {1: "mono", 2: "stereo"}.get(channels, f"{channels}c")
    return f"anullsrc=r={sample_rate}:cl={layout}"


def concat_list(paths: List[str]) -> str:
    """Contents of a concat demuxer list file."""
    lines = []
    for path in paths:
        escaped = path.replace("\\", "/").replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"


# --------------------------------------------------------------------------
# --- ffmpeg / ffprobe wrappers ---
# --------------------------------------------------------------------------

def _run(stream, label: str) -> None:
    logging.info(f"🎬 ffmpeg {label}: {' '.join(stream.get_args())}")
    try:
        stream.overwrite_output().run(capture_stdout=True, capture_stderr=True)
    except ffmpeg.Error as e:
        details = e.stderr.decode("utf8", errors="replace").strip() if e.stderr else "Unknown FFmpeg error"
        logging.error(f"❌ FFmpeg {label} failed. Stderr:\n{details}")
        last_line = details.splitlines()[-1] if details else "Unknown FFmpeg error"
        raise AssemblyError(f"{label} failed: {last_line}") from e


def _probe(path: str) -> dict:
    try:
        return ffmpeg.probe(path)
    except ffmpeg.Error as e:
        details = e.stderr.decode("utf8", errors="replace").strip() if e.stderr else ""
        raise AssemblyError(f"ffprobe failed for {path}: {details}") from e


def probe_duration(path: str) -> float:
    duration = _probe(path).get("format", {}).get("duration")
    return float(duration) if duration else 0.0


def has_audio_stream(path: str) -> bool:
    return any(s.get("codec_type") == "audio" for s in _probe(path).get("streams", []))


def probe_audio_format(path: str) -> Tuple[int, int]:
    """(sample_rate, channels) of the first audio stream."""
    for stream in _probe(path).get("streams", []):
        if stream.get("codec_type") == "audio":
            return int(stream.get("sample_rate") or AUDIO_SAMPLE_RATE), int(stream.get("channels") or 2)
    raise AssemblyError(f"No audio stream in {path}")


def render_kenburns(image_path: str, output_path: str, duration: float, style: str) -> None:
    """Encode a still image into a pan/zoom clip with a silent stereo track."""
    frames = frame_count(duration)
    image = ffmpeg.input(image_path, loop=1)
    silence = ffmpeg.input(silence_source(), f="lavfi")
    stream = ffmpeg.output(
        image, silence, output_path,
        vf=kenburns_filter(style, frames),
        vcodec="libx264", pix_fmt="yuv420p", r=FPS,
        acodec="aac", ar=AUDIO_SAMPLE_RATE, ac=2,
        t=f"{duration:.3f}",
    )
    _run(stream, f"Ken Burns ({style}, {duration:.1f}s)")


def normalize_clip(source_path: str, output_path: str) -> float:
    """
    Re-encode a generated clip to the common size, frame rate and audio
    layout so every segment can be joined with the concat demuxer.
    Returns the clip duration.
    """
    duration = probe_duration(source_path)
    source = ffmpeg.input(source_path)
    video = (
        source.video
        .filter("scale", OUTPUT_WIDTH, OUTPUT_HEIGHT, force_original_aspect_ratio="decrease")
        .filter("pad", OUTPUT_WIDTH, OUTPUT_HEIGHT, "(ow-iw)/2", "(oh-ih)/2")
        .filter("fps", fps=FPS)
        .filter("setsar", 1)
        .filter("format", "yuv420p")
    )
    if has_audio_stream(source_path):
        audio = source.audio
    else:
        audio = ffmpeg.input(silence_source(), f="lavfi").audio
    stream = ffmpeg.output(
        video, audio, output_path,
        vcodec="libx264", acodec="aac", ar=AUDIO_SAMPLE_RATE, ac=2,
        t=f"{duration:.3f}",
    )
    _run(stream, "clip normalization")
    return duration


def make_silence(output_path: str, duration: float,
                 sample_rate: int = AUDIO_SAMPLE_RATE, channels: int = 2) -> None:
    """Silent mp3 in the given format so it joins cleanly with the voice segments."""
    source = ffmpeg.input(silence_source(sample_rate, channels), f="lavfi", t=f"{duration:.3f}")
    stream = source.output(output_path, acodec="libmp3lame", ar=sample_rate, ac=channels)
    _run(stream, f"silence ({duration:.1f}s)")


def concat_files(paths: List[str], output_path: str, list_path: str, reencode_audio: bool = False) -> None:
    with open(list_path, "w", encoding="utf-8") as f:
        f.write(concat_list(paths))

    source = ffmpeg.input(list_path, f="concat", safe=0)
    if reencode_audio:
        # voice segments come from different engines and sample rates
        stream = source.output(output_path, acodec="aac", ar=AUDIO_SAMPLE_RATE, ac=2, audio_bitrate=AUDIO_BITRATE)
    else:
        stream = source.output(output_path, c="copy")
    _run(stream, f"concat of {len(paths)} files")


def retime(source_path: str, output_path: str, factor: float) -> None:
    """Play the whole clip `factor` times faster (video and its audio)."""
    stream = ffmpeg.input(source_path).output(
        output_path,
        vf=setpts_filter(factor),
        af=",".join(atempo_chain(factor)),
        r=FPS, vcodec="libx264", pix_fmt="yuv420p", acodec="aac",
    )
    _run(stream, f"speed x{factor:.3f}")


def mix_voiceover(video_path: str, voice_path: str, output_path: str) -> None:
    """Duck the clip audio under the narration and mux it with the video."""
    video = ffmpeg.input(video_path)
    voice = ffmpeg.input(voice_path)
    bed = video.audio.filter("volume", BACKGROUND_AUDIO_VOLUME)
    narration = voice.audio.filter("volume", VOICEOVER_VOLUME)
    mixed = ffmpeg.filter([bed, narration], "amix", inputs=2, duration="longest", dropout_transition=2)
    stream = ffmpeg.output(
        video.video, mixed, output_path,
        vcodec="copy", acodec="aac", audio_bitrate=AUDIO_BITRATE, shortest=None,
    )
    _run(stream, "voiceover mix")
