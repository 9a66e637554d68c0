from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional, Union

log = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 8000
DEFAULT_TIMEOUT_SECS = 75

INSTRUCTION_STYLES = ("detailed", "concise")
FIELD_POLICIES = ("lenient", "strict")


@dataclass(frozen=True)
class Settings:
    """Startup configuration. Built once and injected into the app."""

    api_key: str = ""
    gateway_url: str = DEFAULT_GATEWAY_URL
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout_secs: int = DEFAULT_TIMEOUT_SECS
    style: str = "detailed"
    field_policy: str = "lenient"

    @property
    def has_token(self) -> bool:
        return bool(self.api_key)


def _choice(raw: Optional[str], allowed: tuple, default: str, name: str) -> str:
    val = (raw or "").strip().lower()
    if not val:
        return default
    if val not in allowed:
        log.warning("Unknown %s=%r; using %r", name, raw, default)
        return default
    return val


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    try:
        temperature = float(env.get("LLM_TEMPERATURE", DEFAULT_TEMPERATURE))
    except (TypeError, ValueError):
        temperature = DEFAULT_TEMPERATURE
    try:
        max_tokens = int(env.get("LLM_MAX_TOKENS", DEFAULT_MAX_TOKENS))
    except (TypeError, ValueError):
        max_tokens = DEFAULT_MAX_TOKENS
    try:
        timeout_secs = int(env.get("LLM_TIMEOUT_SECS", DEFAULT_TIMEOUT_SECS))
    except (TypeError, ValueError):
        timeout_secs = DEFAULT_TIMEOUT_SECS

    return Settings(
        api_key=(env.get("AI_GATEWAY_API_KEY") or "").strip(),
        gateway_url=(env.get("AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL).strip(),
        model=(env.get("AI_GATEWAY_MODEL") or DEFAULT_MODEL).strip(),
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_secs=timeout_secs,
        style=_choice(env.get("INSTRUCTION_STYLE"), INSTRUCTION_STYLES, "detailed", "INSTRUCTION_STYLE"),
        field_policy=_choice(env.get("FIELD_POLICY"), FIELD_POLICIES, "lenient", "FIELD_POLICY"),
    )


def read_env_file(path: Union[str, Path]) -> Dict[str, str]:
    """Parse KEY=VALUE lines from a dotenv-style file.

    Blank lines and ``#`` comments are skipped, an ``export`` prefix is
    allowed, and one layer of matching quotes is removed. An unquoted value
    loses a trailing `` # comment``. A missing file yields an empty dict.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    pairs: Dict[str, str] = {}
    for lineno, line in enumerate(env_path.read_text(encoding="utf-8").splitlines(), 1):
        entry = line.strip()
        if entry.startswith("export "):
            entry = entry[len("export "):].lstrip()
        if not entry or entry.startswith("#"):
            continue
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            log.debug("Ignoring %s:%d (not KEY=VALUE)", env_path, lineno)
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        elif " #" in value:
            value = value.split(" #", 1)[0].rstrip()
        pairs[name] = value
    return pairs


def apply_env_file(path: Union[str, Path], environ: Optional[MutableMapping[str, str]] = None) -> Dict[str, str]:
    """Copy entries from ``path`` into ``environ`` without overriding existing keys.

    Returns the entries that were actually applied.
    """
    env = os.environ if environ is None else environ
    try:
        pairs = read_env_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("Could not read env file %s: %s", path, exc)
        return {}
    applied = {k: v for k, v in pairs.items() if k not in env}
    env.update(applied)
    if applied:
        log.info("Loaded %d setting(s) from %s", len(applied), path)
    return applied
