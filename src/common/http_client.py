"""Shared HTTP helpers used by provider clients and installers.

Encapsulates common request/timeout/retry handling so modules avoid
duplicating try/except blocks.
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.errors import DownloadError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, body_text). A status code of 0
        means every attempt failed before a response was received.
    """
    safe_target = safe_url(url)
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )

                if response.status_code >= 500:
                    last_exception = f"HTTP {response.status_code}"
                    continue

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response ok",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                return response.status_code, dict(response.headers), response.text

            except requests.Timeout:
                last_exception = "timeout"
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                continue

    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response.

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)

    if status_code == 200 and text:
        try:
            return status_code, response_headers, json.loads(text)
        except json.JSONDecodeError:
            logger.debug("JSON decode error for %s", safe_url(url))
            return status_code, response_headers, None

    return status_code, response_headers, None


def download_file(
    url: str,
    target_path: str,
    *,
    headers: Optional[Dict[str, str]] = None
) -> int:
    """Stream a remote file to ``target_path``.

    The body is written to a temporary sibling first and moved into place
    once complete, so an interrupted download never leaves a partial file.

    Returns:
        Number of bytes written.

    Raises:
        DownloadError: On connection errors or a non-200 response.
    """
    safe_target = safe_url(url)
    partial_path = f"{target_path}.part"
    written = 0
    with Timer() as t:
        try:
            with requests.get(
                url,
                headers=headers,
                stream=True,
                timeout=Constants.REQUEST_TIMEOUT,
            ) as response:
                if response.status_code != 200:
                    raise DownloadError(
                        f"Download of {safe_target} failed with HTTP {response.status_code}"
                    )
                with open(partial_path, "wb") as handle:
                    for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
                            written += len(chunk)
            os.replace(partial_path, target_path)
        except requests.RequestException as exc:
            raise DownloadError(f"Download of {safe_target} failed") from exc
        except OSError as exc:
            raise DownloadError(f"Could not write '{target_path}'") from exc
        finally:
            if os.path.exists(partial_path):
                os.remove(partial_path)

    if is_debug_enabled(logger):
        logger.debug(
            "Download complete",
            extra=extra_context(
                event="download",
                component="http_client",
                action="GET",
                outcome="success",
                bytes=written,
                duration_ms=t.duration_ms(),
                target=safe_target
            )
        )
    return written
