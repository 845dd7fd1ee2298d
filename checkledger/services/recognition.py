"""
Recognition client.

Talks to one of two interchangeable providers and hands back their output
untouched:

* vision model (OpenAI Responses API): one request with both images and a
  fixed instruction describing the expected JSON shape;
* plain OCR (OCR.space style): one multipart request per image.
"""
from __future__ import annotations

import base64
import json
import logging
import os
import re
from typing import Any, Optional

import httpx

from checkledger.config import Settings, settings as default_settings
from checkledger.schemas import RecognitionResult

logger = logging.getLogger(__name__)

VISION_INSTRUCTION = """
You will be given TWO images: the FIRST is the FRONT of a bank check, the SECOND is the BACK.
Return a single valid JSON object with exactly these keys:
{
  "front": {
    "amount": "<string decimal or null>",
    "routing_number": "<9-digit string or null>",
    "account_number": "<string or null>",
    "check_number": "<string or null>",
    "raw_text": "<transcribed text from the front>"
  },
  "back": {
    "endorsement_present": <true|false>,
    "raw_text": "<transcribed text from the back>"
  },
  "combined": {
    "amount": "<string decimal or null>",
    "check_id": "<routing_account_check or null>",
    "notes": "<optional short notes or null>"
  }
}
Respond ONLY with valid JSON that matches the schema above. If you cannot find a field, return null for it. Do not add any other fields or commentary.
"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class RecognitionError(Exception):
    """Base class for recognition failures."""


class RecognitionNotConfigured(RecognitionError):
    """Neither provider has credentials."""


class RecognitionServiceError(RecognitionError):
    """Provider answered with a non-success status or was unreachable."""


def _data_url(image: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(image).decode("ascii")


def _candidate_texts(response: Any) -> list[str]:
    """Every text part of a Responses / Chat Completions style payload."""
    if not isinstance(response, dict):
        return []
    outputs: list[Any] = []
    for key in ("output", "choices"):
        value = response.get(key)
        if isinstance(value, list):
            outputs.extend(value)

    texts: list[str] = []
    for item in outputs:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if content is None and isinstance(item.get("message"), dict):
            content = item["message"].get("content")
        if isinstance(content, list):
            for part in content:
                if isinstance(part, dict) and isinstance(part.get("text"), str):
                    texts.append(part["text"])
        elif isinstance(content, str):
            texts.append(content)
    texts.append(json.dumps(response))
    return texts


def parse_vision_response(response: Any) -> dict[str, Any]:
    """Pull the model's JSON object out of a vision-model response."""
    for text in _candidate_texts(response):
        m = _JSON_OBJECT.search(text)
        if not m:
            continue
        try:
            parsed = json.loads(m.group(0))
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return response if isinstance(response, dict) else {}


def plain_text(side: dict[str, Any]) -> str:
    """Transcript of one side, whichever provider produced it."""
    if isinstance(side.get("raw_text"), str):
        return side["raw_text"]
    parsed = side.get("ParsedResults")
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
        text = parsed[0].get("ParsedText")
        return text if isinstance(text, str) else ""
    top = side.get("ParsedText")
    return top if isinstance(top, str) else ""


class RecognitionClient:
    """Calls the configured provider; one round trip per call, no retries."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or default_settings
        self.http = http_client or httpx.Client(
            timeout=self.config.RECOGNITION_TIMEOUT_SECONDS
        )

    def close(self) -> None:
        self.http.close()

    @property
    def provider(self) -> Optional[str]:
        if self.config.OPENAI_API_KEY:
            return "vision"
        if self.config.CHECK_OCR_API_URL and self.config.CHECK_OCR_API_KEY:
            return "ocr"
        return None

    def recognize(self, front: bytes, back: bytes) -> RecognitionResult:
        provider = self.provider
        if provider is None:
            raise RecognitionNotConfigured("OCR service not configured.")

        try:
            if provider == "vision":
                combined = self._call_vision(front, back)
                result = RecognitionResult(
                    provider="vision",
                    front=combined["front"] if isinstance(combined.get("front"), dict) else {},
                    back=combined["back"] if isinstance(combined.get("back"), dict) else {},
                    combined=combined,
                )
            else:
                result = RecognitionResult(
                    provider="ocr",
                    front=self._call_ocr(front),
                    back=self._call_ocr(back),
                )
        except httpx.HTTPError as e:
            logger.error("Recognition transport failure (%s): %s", provider, e)
            raise RecognitionServiceError(str(e)) from e

        logger.info("Recognition complete via %s", provider)
        return result

    # ── providers ───────────────────────────────────────────────────────────
    def _call_vision(self, front: bytes, back: bytes) -> dict[str, Any]:
        payload = {
            "model": self.config.OPENAI_VISION_MODEL,
            "temperature": 0,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": VISION_INSTRUCTION},
                        {"type": "input_image", "image_url": _data_url(front)},
                        {"type": "input_image", "image_url": _data_url(back)},
                    ],
                }
            ],
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.OPENAI_API_KEY}",
        }
        logger.info("Vision call model=%s", self.config.OPENAI_VISION_MODEL)
        resp = self.http.post(self.config.OPENAI_RESPONSES_URL, headers=headers, json=payload)
        if not resp.is_success:
            raise RecognitionServiceError(
                f"OpenAI vision error {resp.status_code}: {resp.text}"
            )
        try:
            body = resp.json()
        except ValueError:
            body = {}
        return parse_vision_response(body)

    def _call_ocr(self, image: bytes) -> dict[str, Any]:
        data = {
            "base64Image": _data_url(image),
            "language": "eng",
            "isOverlayRequired": "false",
        }
        # multipart/form-data, as the provider expects
        files = {key: (None, value) for key, value in data.items()}
        resp = self.http.post(
            self.config.CHECK_OCR_API_URL,
            headers={"apikey": self.config.CHECK_OCR_API_KEY},
            files=files,
        )
        if not resp.is_success:
            raise RecognitionServiceError(f"OCR service error {resp.status_code}: {resp.text}")
        try:
            body = resp.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}


def dump_debug(result: RecognitionResult, directory: str) -> None:
    """Write raw provider output to *directory* for offline inspection."""
    dumps = {"front_ocr.json": result.front, "back_ocr.json": result.back}
    if result.combined is not None:
        dumps["combined_ocr.json"] = result.combined
    for name, payload in dumps.items():
        path = os.path.join(directory, name)
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            logger.warning("Could not write recognition dump %s: %s", path, e)
