import asyncio
import io
import logging
from urllib.error import URLError

import bs4
import httpx
import openai
from pytube import YouTube  # pyright: ignore[reportMissingTypeStubs]
from pytube.exceptions import PytubeError  # pyright: ignore[reportMissingTypeStubs]

from chef.errors import FetchError, TranscriptUnavailableError
import config


CONFIG = config.Config()

BOILERPLATE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "aside", "form"]
HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; ChefDigital/0.1)"}


logger = logging.getLogger(__name__)


def readable_text(html: str) -> str:
    soup = bs4.BeautifulSoup(html, features="html.parser")
    for tag in soup(BOILERPLATE_TAGS):
        tag.decompose()
    body = soup.find("article") or soup.find("main") or soup.body or soup
    return body.get_text("\n", strip=True)


async def text_from_webpage(
    url: str,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    client = (
        httpx.AsyncClient(
            timeout=CONFIG.http_timeout, follow_redirects=True, headers=HEADERS
        )
        if http_client is None
        else http_client
    )
    logger.info("Fetching %s", url)
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise FetchError(url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise FetchError(url, f"Could not fetch page ({e.__class__.__name__})") from e
    finally:
        if http_client is None:
            await client.aclose()

    text = readable_text(resp.text)
    if not text:
        raise FetchError(url, "No readable text")
    return text


def _audio_to_buffer(url: str, buffer: io.BytesIO) -> None:
    yt = YouTube(url)
    audio = yt.streams.get_audio_only()
    if not audio:
        raise TranscriptUnavailableError(url, "No audio")
    audio.stream_to_buffer(buffer)


async def transcript_from_youtube_url(
    url: str,
    *,
    openai_client: openai.AsyncClient,
    model: str | None = None,
) -> str:
    """Transcribe a YouTube video's audio. The audio only ever lives in memory."""
    model = CONFIG.transcription_model if model is None else model
    with io.BytesIO() as buffer:
        logger.info("Getting audio for %s", url)
        try:
            await asyncio.to_thread(_audio_to_buffer, url, buffer)
        except (PytubeError, URLError) as e:
            raise TranscriptUnavailableError(url, "Video unavailable") from e

        if not buffer.getbuffer().nbytes:
            raise TranscriptUnavailableError(url, "No audio")

        logger.info("Transcribing audio for %s", url)
        try:
            resp = await openai_client.audio.transcriptions.create(
                file=("audio.mp4", buffer.getvalue()),
                model=model,
            )
        except openai.OpenAIError as e:
            raise TranscriptUnavailableError(url, "Transcription failed") from e

    text = resp.text.strip()
    if not text:
        raise TranscriptUnavailableError(url, "Empty transcript")
    return text
