# -*- coding: utf-8 -*-
import io
import logging
import tempfile
import typing as t
from pathlib import Path

import pdfplumber
import requests

from orchestrator.errors import ExtractionFailure

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 60.0


def _load_pdf_path(path_or_url: str) -> str:
    """
    Loads a PDF from a local path or a URL and returns the local file path.
    :param path_or_url: A local file path or a URL to a PDF file.
    :return: The local file path to the PDF.
    """
    if path_or_url.startswith('http://') or path_or_url.startswith('https://'):
        response = requests.get(path_or_url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
        with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as tmp_file:
            tmp_file.write(response.content)
            return tmp_file.name
    else:
        path = Path(path_or_url)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return str(path)


def _read_pages(source: t.Union[str, t.BinaryIO]) -> list[str]:
    pages: list[str] = []
    try:
        pdf = pdfplumber.open(source)
    except Exception as e:
        raise ExtractionFailure(f"Could not open PDF: {e}") from e
    with pdf:
        for number, page in enumerate(pdf.pages, 1):
            try:
                text = page.extract_text()
            except Exception as e:
                # one broken page must not cost us the whole document
                logger.warning("Skipping unreadable page %d: %s", number, e)
                continue
            if text:
                pages.append(text.strip())
    return pages


def extract_pdf_pages(path_or_url: str) -> list[str]:
    """
    Extracts per-page text from a local or remote PDF.
    Pages that cannot be read are skipped.
    :param path_or_url: A local file path or a URL to a PDF file.
    :return: The text of each readable page.
    """
    try:
        pdf_path = _load_pdf_path(path_or_url)
    except (OSError, requests.RequestException) as e:
        raise ExtractionFailure(f"Could not load PDF {path_or_url}: {e}") from e
    return _read_pages(pdf_path)


def extract_pdf_pages_from_content(content: bytes) -> list[str]:
    """
    Extracts per-page text from raw PDF bytes.
    :param content: The PDF file contents.
    :return: The text of each readable page.
    """
    return _read_pages(io.BytesIO(content))


def extract_pdf_text(source: t.Union[bytes, str]) -> str:
    """
    Extracts the whole text of a PDF given as raw bytes or as a path/URL.
    Blocking; run it in a worker thread from async code.
    :param source: PDF bytes, or a local path or URL.
    :return: The readable pages joined with newlines.
    """
    if isinstance(source, bytes):
        pages = extract_pdf_pages_from_content(source)
    else:
        pages = extract_pdf_pages(source)
    return "\n".join(pages)
