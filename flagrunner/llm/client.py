from __future__ import annotations

import base64
from typing import Any, Protocol

from openai import APIStatusError, OpenAI, OpenAIError

from flagrunner.config import Settings, settings
from flagrunner.errors import TransformationError

UserMessage = str | list[dict[str, Any]]


class AICapability(Protocol):
    """Text, vision and speech-to-text operations the pipeline depends on."""

    def complete(
        self,
        user_message: UserMessage,
        system_message: str | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str: ...

    def describe_image(self, image: bytes, mime: str, instruction: str) -> str: ...

    def transcribe(self, audio: bytes, filename: str) -> str: ...

    def generate_image(self, prompt: str, size: str = "1024x1024") -> str: ...


def image_message(image: bytes, mime: str, instruction: str) -> list[dict[str, Any]]:
    """Build a multi-part user message carrying the image as a base64 data URL."""

    encoded = base64.b64encode(image).decode("ascii")
    return [
        {"type": "text", "text": instruction},
        {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{encoded}"}},
    ]


def _wrap(error: OpenAIError, action: str) -> TransformationError:
    status = error.status_code if isinstance(error, APIStatusError) else None
    return TransformationError(f"{action}. Error: {error}", status=status)


class OpenAIClient:
    """AI capability backed by the OpenAI chat and transcription endpoints."""

    def __init__(self, config: Settings = settings, client: OpenAI | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.config.openai_api_key:
                raise TransformationError("OpenAI API key not configured")
            self._client = OpenAI(
                api_key=self.config.openai_api_key,
                base_url=self.config.openai_base_url,
                timeout=self.config.request_timeout,
            )
        return self._client

    def complete(
        self,
        user_message: UserMessage,
        system_message: str | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str:
        messages = [
            {"role": "system", "content": system_message or self.config.system_message},
            {"role": "user", "content": user_message},
        ]
        try:
            response = self.client.chat.completions.create(
                model=model or self.config.chat_model,
                temperature=self.config.temperature if temperature is None else temperature,
                messages=messages,
            )
        except OpenAIError as error:
            raise _wrap(error, "Failed to fetch OpenAI response") from error
        if not response.choices:
            return ""
        content = response.choices[0].message.content
        return (content or "").strip()

    def describe_image(self, image: bytes, mime: str, instruction: str) -> str:
        return self.complete(
            image_message(image, mime, instruction),
            model=self.config.vision_model,
        )

    def transcribe(self, audio: bytes, filename: str) -> str:
        try:
            result = self.client.audio.transcriptions.create(
                model=self.config.transcription_model,
                file=(filename, audio),
            )
        except OpenAIError as error:
            raise _wrap(error, "Failed to transcribe audio") from error
        text = getattr(result, "text", None)
        if not text:
            raise TransformationError("Failed to transcribe audio. Error: empty transcription")
        return text

    def generate_image(self, prompt: str, size: str = "1024x1024") -> str:
        """Return the URL of a single image generated from ``prompt``."""

        try:
            response = self.client.images.generate(
                model=self.config.image_model,
                prompt=prompt,
                n=1,
                size=size,
            )
        except OpenAIError as error:
            raise _wrap(error, "Failed to generate image") from error
        url = response.data[0].url if response.data else None
        if not url:
            raise TransformationError("Failed to generate image. Error: no image URL returned")
        return url


__all__ = ["AICapability", "OpenAIClient", "UserMessage", "image_message"]
