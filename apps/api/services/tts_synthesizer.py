"""
TTS Synthesizer

The TTS server does not return audio over HTTP. A synthesis GET is a trigger:
the server writes <output-token>.wav into a shared directory some time later.
So one synthesis is three steps:

1. Readiness: probe the generate endpoint until it answers (the backend may
   still be loading its model). Bounded by TTS_WARMUP_ATTEMPTS x TTS_WARMUP_DELAY_MS.
2. Trigger: GET with text/output/speaker/sample query params.
3. Handoff: poll the shared directory for the .wav until TTS_FILE_TIMEOUT_MS.

Every failure here is scoped to the habit being synthesized.
"""
from __future__ import annotations

import logging
import subprocess
import time
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from core.config import settings
from services.audio_errors import SynthesisRequestFailed, SynthesisTimeout, TtsServerUnavailable
from services.habit_resolver import ScheduledHabit
from services.retry import PollPolicy, RetryExhausted, RetryPolicy, call_with_retries, poll_until

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base URL resolution
# ---------------------------------------------------------------------------

def detect_gateway_address() -> Optional[str]:
    """Default gateway from `ip route` (the Docker host when running in a container)."""
    try:
        output = subprocess.run(
            ["ip", "route"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        ).stdout
    except (OSError, subprocess.SubprocessError):
        logger.info("Unable to detect gateway address via ip route; continuing with fallback")
        return None

    for line in output.splitlines():
        fields = line.split()
        if len(fields) >= 3 and fields[0] == "default" and fields[1] == "via":
            logger.info(f"Detected default gateway at {fields[2]}")
            return fields[2]
    return None


def resolve_tts_base_url(
    explicit_url: Optional[str] = None,
    port: int = 5000,
    gateway_lookup: Callable[[], Optional[str]] = detect_gateway_address,
) -> str:
    if explicit_url:
        url = explicit_url.rstrip("/")
        logger.info(f"Using TTS server URL from environment: {url}")
        return url

    gateway = gateway_lookup()
    if gateway:
        url = f"http://{gateway}:{port}"
        logger.info(f"Using gateway-based TTS server URL: {url}")
        return url

    url = f"http://127.0.0.1:{port}"
    logger.info(f"Falling back to localhost TTS server URL: {url}")
    return url


def build_generate_url(base_url: str, generate_path: str) -> str:
    path = generate_path if generate_path.startswith("/") else f"/{generate_path}"
    return f"{base_url.rstrip('/')}{path}"


def new_output_token(habit: ScheduledHabit, target_date: date) -> str:
    """Unique per attempt so two generations never write the same .wav."""
    return f"habit_{habit.type.value}_{habit.id}_{target_date.isoformat()}_{uuid.uuid4()}"


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------

class TtsSynthesizer:

    def __init__(
        self,
        generate_url: str,
        voices_dir: Path,
        project_root: Path,
        warmup: RetryPolicy,
        file_wait: PollPolicy,
        request_timeout_s: float = 30.0,
        http: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.generate_url = generate_url
        self.voices_dir = Path(voices_dir)
        self.project_root = Path(project_root)
        self.warmup = warmup
        self.file_wait = file_wait
        self.request_timeout_s = request_timeout_s
        self.http = http or requests
        self.sleep = sleep
        self.clock = clock

    @classmethod
    def from_settings(cls, http: Any = None) -> "TtsSynthesizer":
        base_url = resolve_tts_base_url(settings.TTS_SERVER_URL, settings.TTS_SERVER_PORT)
        return cls(
            generate_url=build_generate_url(base_url, settings.TTS_GENERATE_PATH),
            voices_dir=settings.TTS_VOICES_DIR,
            project_root=settings.PROJECT_ROOT,
            warmup=RetryPolicy.from_millis(settings.TTS_WARMUP_ATTEMPTS, settings.TTS_WARMUP_DELAY_MS),
            file_wait=PollPolicy.from_millis(settings.TTS_FILE_TIMEOUT_MS, settings.TTS_FILE_POLL_MS),
            request_timeout_s=settings.TTS_REQUEST_TIMEOUT_S,
            http=http,
        )

    def ensure_server_ready(self) -> None:
        def probe():
            r = self.http.get(self.generate_url, timeout=self.request_timeout_s)
            r.raise_for_status()
            return r

        def on_failure(attempt: int, error: Exception):
            logger.warning(
                f"TTS server check failed (attempt {attempt}/{self.warmup.max_attempts}): {error}"
            )

        try:
            call_with_retries(probe, self.warmup, sleep=self.sleep, on_failure=on_failure)
        except RetryExhausted as e:
            raise TtsServerUnavailable(
                f"TTS server failed to respond after {e.attempts} attempts"
            ) from e.last_error

    def _sample_param(self, sample_path: str) -> str:
        path = Path(sample_path)
        if not path.is_absolute():
            path = self.project_root / path
        return str(path)

    def build_params(self, narrator, script: str, output_token: str) -> Dict[str, str]:
        params = {"text": script, "output": output_token}
        if narrator.voice:
            params["speaker"] = narrator.voice
        if narrator.sample_path:
            params["sample"] = self._sample_param(narrator.sample_path)
        return params

    def request_synthesis(self, narrator, script: str, output_token: str) -> None:
        params = self.build_params(narrator, script, output_token)
        logger.info(
            f"Triggering TTS synthesis token={output_token} "
            f"speaker={narrator.voice or 'default'} sample={narrator.sample_path or 'none'}"
        )
        try:
            r = self.http.get(self.generate_url, params=params, timeout=self.request_timeout_s)
            r.raise_for_status()
        except requests.RequestException as e:
            raise SynthesisRequestFailed(f"TTS synthesis request failed: {e}") from e

    def wait_for_file(self, path: Path) -> Path:
        if not poll_until(path.exists, self.file_wait, clock=self.clock, sleep=self.sleep):
            raise SynthesisTimeout(path)
        logger.info(f"Detected synthesized file at {path}")
        return path

    def synthesize(self, narrator, script: str, output_token: Optional[str] = None) -> Path:
        """Return the path of the synthesized .wav in the shared voices dir."""
        output_token = output_token or f"clip_{uuid.uuid4()}"
        self.ensure_server_ready()
        self.request_synthesis(narrator, script, output_token)
        source = self.wait_for_file(self.voices_dir / f"{output_token}.wav")
        logger.info(f"TTS synthesis completed for token={output_token}")
        return source
