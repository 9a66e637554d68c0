from __future__ import annotations

from pydantic import BaseModel, Field, StrictStr, field_validator


class GenerationRequest(BaseModel):
    prompt: StrictStr = Field(..., description="Natural-language description of the website to build")

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        # Checked trimmed, forwarded verbatim
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v


class GenerationResult(BaseModel):
    html: str = ""
    css: str = ""
    js: str = ""
    description: str = ""
