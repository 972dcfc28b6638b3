import asyncio
import io
import logging
from typing import Awaitable, Callable, TypeAlias
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError
import openai
import pytesseract  # pyright: ignore[reportMissingTypeStubs]

from chef.aopenai import openai_client_factory
from chef.errors import (
    EmptyInputError,
    ExtractionError,
    InvalidSourceError,
    TranscriptUnavailableError,
    UnsupportedSourceError,
)
from chef.models import SourceInput, SourceKind
import config
from data import transcript_from_youtube_url


CONFIG = config.Config()

VIDEO_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtu.be",
}


OCR: TypeAlias = Callable[[bytes], Awaitable[str]]
Transcripts: TypeAlias = Callable[[str], Awaitable[str]]


logger = logging.getLogger(__name__)


def _image_to_string(data: bytes, lang: str) -> str:
    with Image.open(io.BytesIO(data)) as img:
        return pytesseract.image_to_string(img, lang=lang)


async def ocr_image(data: bytes, *, lang: str | None = None) -> str:
    lang = CONFIG.ocr_language if lang is None else lang
    try:
        return await asyncio.to_thread(_image_to_string, data, lang)
    except UnidentifiedImageError as e:
        raise ExtractionError("Could not read the image.") from e
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
        raise ExtractionError(f"OCR failed: {e}") from e


def is_supported_video(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and (parsed.hostname or "") in VIDEO_HOSTS


class TextExtractor:
    """Plain text out of whatever the user submitted.

    Image and video bytes are only held for the duration of a call.
    """

    def __init__(
        self,
        *,
        ocr: OCR | None = None,
        transcripts: Transcripts | None = None,
        openai_client: openai.AsyncClient | None = None,
    ) -> None:
        self.ocr = ocr_image if ocr is None else ocr
        self.transcripts = self.youtube_transcript if transcripts is None else transcripts
        self.openai_client = openai_client

    async def youtube_transcript(self, url: str) -> str:
        if self.openai_client is None:
            self.openai_client = openai_client_factory()
        return await transcript_from_youtube_url(url, openai_client=self.openai_client)

    async def extract(self, source: SourceInput) -> str:
        if not source.payload:
            raise EmptyInputError()

        match source.kind, source.payload:
            case SourceKind.text, str(text):
                return self.from_text(text)
            case SourceKind.image, bytes(data):
                return await self.from_image(data)
            case SourceKind.video, str(url):
                return await self.from_video(url)
            case _:
                raise InvalidSourceError(f"Cannot extract text from {source!r}")

    def from_text(self, text: str) -> str:
        text = text.strip()
        if not text:
            raise EmptyInputError()
        return text

    async def from_image(self, data: bytes) -> str:
        logger.info("Running OCR over %d bytes", len(data))
        text = (await self.ocr(data)).strip()
        if not text:
            raise ExtractionError("No text could be recognised in the image.")
        return text

    async def from_video(self, url: str) -> str:
        url = url.strip()
        if not url:
            raise EmptyInputError()
        if not is_supported_video(url):
            raise UnsupportedSourceError(url)
        logger.info("Resolving transcript for %s", url)
        text = (await self.transcripts(url)).strip()
        if not text:
            raise TranscriptUnavailableError(url, "Empty transcript")
        return text
