from __future__ import annotations

import base64
from types import SimpleNamespace
from typing import Any

import openai
import pytest

from flagrunner.config import Settings
from flagrunner.errors import TransformationError
from flagrunner.llm.client import OpenAIClient, image_message


class FakeOpenAI:
    def __init__(self, content: str | None = "  answer  ", error: Exception | None = None) -> None:
        self.requests: list[dict[str, Any]] = []
        self._content = content
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_completion))
        self.audio = SimpleNamespace(transcriptions=SimpleNamespace(create=self._create_transcription))
        self.images = SimpleNamespace(generate=self._generate_image)

    def _create_completion(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def _create_transcription(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        return SimpleNamespace(text=self._content)

    def _generate_image(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        return SimpleNamespace(data=[SimpleNamespace(url=self._content)])


def test_complete_sends_system_and_user_messages(temp_settings: Settings) -> None:
    fake = FakeOpenAI()
    client = OpenAIClient(temp_settings, client=fake)

    reply = client.complete("Which sector?", temperature=0.5)

    assert reply == "answer"
    request = fake.requests[0]
    assert request["model"] == temp_settings.chat_model
    assert request["temperature"] == 0.5
    assert request["messages"][0] == {"role": "system", "content": temp_settings.system_message}
    assert request["messages"][1] == {"role": "user", "content": "Which sector?"}


def test_complete_handles_missing_content(temp_settings: Settings) -> None:
    client = OpenAIClient(temp_settings, client=FakeOpenAI(content=None))

    assert client.complete("hello", system_message="Be brief.") == ""


def test_describe_image_uses_data_url(temp_settings: Settings) -> None:
    fake = FakeOpenAI()
    client = OpenAIClient(temp_settings, client=fake)

    client.describe_image(b"\x89PNG", "image/png", "Read the text.")

    content = fake.requests[0]["messages"][1]["content"]
    assert fake.requests[0]["model"] == temp_settings.vision_model
    assert content == image_message(b"\x89PNG", "image/png", "Read the text.")
    assert content[1]["image_url"]["url"] == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()


def test_transcribe_passes_named_file(temp_settings: Settings) -> None:
    fake = FakeOpenAI(content="Rafał mówi")
    client = OpenAIClient(temp_settings, client=fake)

    assert client.transcribe(b"ID3", "rafal.mp3") == "Rafał mówi"
    assert fake.requests[0]["file"] == ("rafal.mp3", b"ID3")
    assert fake.requests[0]["model"] == "whisper-1"


def test_empty_transcription_is_an_error(temp_settings: Settings) -> None:
    client = OpenAIClient(temp_settings, client=FakeOpenAI(content=""))

    with pytest.raises(TransformationError, match="empty transcription"):
        client.transcribe(b"ID3", "silence.mp3")


def test_api_failures_become_transformation_errors(temp_settings: Settings) -> None:
    client = OpenAIClient(temp_settings, client=FakeOpenAI(error=openai.OpenAIError("quota exceeded")))

    with pytest.raises(TransformationError, match="quota exceeded"):
        client.complete("hello")


def test_missing_api_key_is_reported_lazily(temp_settings: Settings) -> None:
    client = OpenAIClient(temp_settings)

    with pytest.raises(TransformationError, match="API key"):
        client.complete("hello")


def test_generate_image_returns_url(temp_settings: Settings) -> None:
    fake = FakeOpenAI(content="https://images.test/robot.png")
    client = OpenAIClient(temp_settings, client=fake)

    url = client.generate_image("robot on a dirt road", size="1024x1792")

    assert url == "https://images.test/robot.png"
    assert fake.requests[0] == {
        "model": "dall-e-3",
        "prompt": "robot on a dirt road",
        "n": 1,
        "size": "1024x1792",
    }


def test_generate_image_failures_become_transformation_errors(temp_settings: Settings) -> None:
    client = OpenAIClient(temp_settings, client=FakeOpenAI(error=openai.OpenAIError("content policy")))

    with pytest.raises(TransformationError, match="Failed to generate image"):
        client.generate_image("robot")


def test_generate_image_without_url_is_an_error(temp_settings: Settings) -> None:
    client = OpenAIClient(temp_settings, client=FakeOpenAI(content=None))

    with pytest.raises(TransformationError, match="no image URL"):
        client.generate_image("robot")
