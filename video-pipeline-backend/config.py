"""
Configuration file for the AI Video Pipeline backend.
Contains all global constants, environment wiring and prompt templates.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# --- Paths ---
PROJECT_ROOT = os.getcwd()
MEDIA_DIR = os.getenv("MEDIA_DIR", os.path.join(PROJECT_ROOT, "media"))
WORK_DIR = os.getenv("WORK_DIR", os.path.join(PROJECT_ROOT, "work"))

# --- Database & queue ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pipeline.db")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# --- LLM (OpenRouter) ---
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "arcee-ai/trinity-large-preview:free")
LLM_MAX_TOKENS = 4000
LLM_TEMPERATURE = 0.7
LLM_TIMEOUT = 180

# --- Text-to-speech ---
FISH_AUDIO_API_KEY = os.getenv("FISH_AUDIO_API_KEY", "")
FISH_AUDIO_URL = "https://api.fish.audio/v1/tts"
QWEN_SPACE_URL = os.getenv("QWEN_SPACE_URL", "https://qwen-qwen3-tts.hf.space")
QWEN_MODEL_SIZE = "1.7B"
TTS_TIMEOUT = 180

# --- Image generation ---
HF_TOKEN = os.getenv("HF_TOKEN", "")
HF_IMAGE_MODEL_URL = os.getenv(
    "HF_IMAGE_MODEL_URL",
    "https://api-inference.huggingface.co/models/black-forest-labs/FLUX.1-schnell",
)
POLLINATIONS_URL = "https://image.pollinations.ai/prompt"
IMAGE_TIMEOUT = 120

# --- Video generation (MiniMax) ---
MINIMAX_API_KEY = os.getenv("MINIMAX_API_KEY", "")
MINIMAX_GROUP_ID = os.getenv("MINIMAX_GROUP_ID", "")
MINIMAX_MODEL = os.getenv("MINIMAX_MODEL", "MiniMax-Hailuo-02")
MINIMAX_BASE_URL = os.getenv("MINIMAX_BASE_URL", "https://api.minimax.io/v1")
MINIMAX_CLIP_SECONDS = 6
MINIMAX_RESOLUTION = "720P"
MINIMAX_PROMPT_LIMIT = 2000
MINIMAX_POLL_INTERVAL = float(os.getenv("MINIMAX_POLL_INTERVAL", "10"))
MINIMAX_POLL_TIMEOUT = float(os.getenv("MINIMAX_POLL_TIMEOUT", "600"))

# --- Stitcher dispatch ---
STITCH_DISPATCH = os.getenv("STITCH_DISPATCH", "celery")  # celery | github | none
GITHUB_REPO = os.getenv("GITHUB_REPO", "")
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
GITHUB_EVENT_TYPE = "stitch_video"

# --- Object storage ---
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "supabase")  # supabase | local
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
OUTPUT_BUCKET = os.getenv("OUTPUT_BUCKET", "pipeline_output")
REFERENCE_BUCKET = os.getenv("REFERENCE_BUCKET", "reference_voices")
SIGNED_URL_SECONDS = 3600

# --- Pacing (seconds) ---
TTS_DELAY = float(os.getenv("TTS_DELAY", "5"))
TTS_CLONE_DELAY = float(os.getenv("TTS_CLONE_DELAY", "7"))
TTS_CLONE_COOLDOWN = float(os.getenv("TTS_CLONE_COOLDOWN", "22"))
TTS_RETRY_DELAY = float(os.getenv("TTS_RETRY_DELAY", "8"))
TTS_RETRIES = 3
IMAGE_DELAY = float(os.getenv("IMAGE_DELAY", "2"))
IMAGE_RETRY_DELAY = float(os.getenv("IMAGE_RETRY_DELAY", "5"))
IMAGE_RETRIES = 2
VIDEO_SUBMIT_DELAY = float(os.getenv("VIDEO_SUBMIT_DELAY", "1"))
REQUEST_TIMEOUT = 60

# --- Jobs ---
DEFAULT_VOICE = "en-US-AndrewMultilingualNeural"
DEFAULT_SEGMENT_COUNT = 5
MAX_SEGMENTS = 60
RECENT_JOBS_LIMIT = 20

# Edge TTS voices offered to clients (ShortName -> label)
EDGE_TTS_VOICES = [
    ("en-US-GuyNeural", "Guy (US Male)"),
    ("en-US-AriaNeural", "Aria (US Female)"),
    ("en-US-JennyNeural", "Jenny (US Female)"),
    ("en-US-DavisNeural", "Davis (US Male)"),
    ("en-GB-SoniaNeural", "Sonia (UK Female)"),
    ("en-GB-RyanNeural", "Ryan (UK Male)"),
    ("en-US-AndrewMultilingualNeural", "Andrew (Multilingual)"),
    ("en-US-EmmaMultilingualNeural", "Emma (Multilingual)"),
]

# --- Assembly ---
FPS = 30
OUTPUT_WIDTH = 1280
OUTPUT_HEIGHT = 720
KENBURNS_PRESCALE_WIDTH = 1920
DEFAULT_SEGMENT_DURATION = 6.0
SPEED_MATCH_TOLERANCE = 0.5
BACKGROUND_AUDIO_VOLUME = 0.3
VOICEOVER_VOLUME = 1.0
AUDIO_SAMPLE_RATE = 44100
AUDIO_BITRATE = "192k"

# --------------------------------------------------------------------------
# --- Prompt Engineering Section ---
# --------------------------------------------------------------------------

VOICE_SYSTEM_PROMPT = "You are a professional voiceover script editor. Output only valid JSON."
IMAGE_SYSTEM_PROMPT = "You are a storyboard artist. Output only valid JSON."
VIDEO_SYSTEM_PROMPT = "You are a cinematic director. Output only valid JSON."

VOICE_PROMPT = """You are a professional voiceover script editor.

Convert the RAW text into a clear, natural, spoken script formatted as valid JSON only.

Output format:
{{
  "voice1": "text",
  "voice2": "text",
  ...
  "voice{count}": "text"
}}

Rules:

1) Produce EXACTLY {count} paragraphs: voice1 -> voice{count}.
   Each paragraph must be 40-60 words.
   Maintain logical and narrative flow.

2) Rewrite for speech:
   - Use conversational language
   - Prefer short, clear sentences
   - Improve rhythm and pacing
   - Use natural transitions
   - Remove awkward phrasing
   - Preserve meaning and key facts

3) Optimize for text-to-speech:
   - Avoid long or nested sentences
   - Avoid symbols, lists, and formatting
   - Avoid uncommon abbreviations
   - Spell out numbers when helpful
   - Use punctuation to guide pauses

4) Do NOT include:
   - Inline performance instructions
   - Stage directions
   - Bracketed emotion tags
   - Markup or metadata
   - Explanations
   - Markdown
   - Extra text

5) Output ONLY valid JSON.
   No comments. No trailing commas. No text outside JSON.

RAW TEXT:
{script}"""

IMAGE_PROMPT = """You are an expert visual designer and prompt engineer.

Your task is: Given a JSON of {count} text paragraphs (voice1 -> voice{count}), generate a **new JSON with {count} image generation prompts** that correspond to each paragraph. Each prompt should describe a **key visual representative frame** for the paragraph.

Requirements:

1. Output must be **valid JSON only**, keys "image1" to "image{count}", values are strings. No explanations, markdown, instructions, or extra text.
2. Each prompt should describe a **single, clear image** representing the paragraph.
3. Maintain a **consistent visual style** across all prompts:
   - Color palette (e.g., cinematic, moody, vibrant, pastel)
   - Character design (age, gender, clothing, expression)
   - Background style (interior, exterior, lighting, weather)
4. Include **rich visual details**:
   - Lighting (soft, harsh, golden hour, neon, shadows)
   - Composition (foreground, background, perspective)
   - Objects and environment
   - Emotions conveyed by scene
5. The prompt should be concise but descriptive enough to generate a **high-quality, static first frame** for a video.
6. Do NOT include explanations, instructions, markdown, or extra text.

Example format:
{{
  "image1": "A young woman standing on a rainy street under neon lights, reflective puddles, cinematic moody palette, detailed skyscraper background, soft rain, contemplative expression, key visual representative frame",
  "image2": "..."
}}

Input JSON:
{voice_json}"""

VIDEO_PROMPT = """You are an expert cinematic director and visual prompt engineer.

Your task is: Given a JSON of {count} text paragraphs (image1 -> image{count}), generate a **new JSON with {count} video generation prompts**, one per paragraph. Each prompt should describe a **20-second dynamic video** corresponding to the paragraph.

Requirements:

1. Output must be **valid JSON only**, keys "video1" to "video{count}", values are strings. No explanations, markdown, instructions, or extra text.
2. Each prompt should describe a **multi-shot / multi-action scene** suitable for a 20-second clip.
3. Maintain a **consistent visual style** across all prompts:
   - Color palette
   - Character design
   - Background environment
   - Lighting
4. Include **types of cinematic shots and camera angles** (use creatively):
   - Eye Level Shot
   - Low Angle Shot
   - High Angle Shot
   - Hip Level Shot
   - Knee Level Shot
   - Ground Level Shot
   - Shoulder Level Shot
   - Dutch Angle
   - Bird's-Eye View
   - Aerial Shot
   - Over-the-Shoulder Shot
   - Tracking Shot
   - Close-Up
   - Extreme Close-Up
5. Include **motion/action cues**:
   - Camera movement (pan, tilt, dolly, tracking)
   - Character motion (walking, running, turning, gesturing)
   - Environmental motion (rain, smoke, fire, explosions)
6. Include **rich visual details**:
   - Foreground and background composition
   - Textures, objects, and props
   - Emotions conveyed by scene
7. Each prompt should **flow through multiple micro-scenes** (e.g., opening establishing shot, mid-action close-up, end wide shot) to make the video visually dynamic.
8. Do NOT include explanations, markdown, instructions, or extra text.

Example format:
{{
  "video1": "Eye level shot: young woman walks down neon-lit rainy street, camera slowly dollying forward; Close-up: raindrops on her cheek, contemplative expression; Tracking shot: pan to distant skyscrapers, mist rising; Wide shot: entire street, moving cars, neon reflections, cinematic moody palette",
  "video2": "High angle shot: bustling market, camera tilting down to show interactions; Medium shot: vendor gestures, colorful produce; Close-up: hand exchanging coin; Wide shot: crowd moves through street, cinematic lighting"
}}

Input JSON:
{image_json}"""
