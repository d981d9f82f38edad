"""
Seam between an edit session and the external AI background-removal service.

The service itself is an opaque callable:

    remove_background(encoded_image: bytes) -> bytes | str | None

It may return raw image bytes or a base64 `data:image/...` URL. A missing
payload, or any exception it raises, is reported as ExternalServiceFailure.

The call is the only operation that runs off the session's thread.
AiRemovalRunner executes it on a ThreadPoolExecutor and hands back a Future;
the caller applies the result on its own thread with apply_ai_result(). Each
request is tagged with the session generation it was made against, so a
response that arrives after a new image load or auto segmentation is
discarded instead of overwriting newer state.

Example:
    >>> with AiRemovalRunner(my_service) as runner:
    ...     future = runner.submit(session)
    ...     # session stays usable for painting and undo meanwhile
    ...     applied = apply_ai_result(session, future.result())
"""

import base64
import binascii
import concurrent.futures
from dataclasses import dataclass
import logging
import re
from typing import Callable, Optional, Union

from OC_Libs.errors import DecodeError, ExternalServiceFailure
from OC_Libs.SessionLib.edit_session import EditSession
from OC_Libs.SessionLib.session_models import AiRequest

logger = logging.getLogger(__name__)

RemoveBackgroundFunction = Callable[[bytes], Optional[Union[bytes, str]]]

_DATA_URL_PATTERN = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)


@dataclass(frozen=True)
class AiRemovalResult:
    """Image returned by the AI service for one request.

    Attributes:
        generation: Session generation the request was made against
        image_bytes: Encoded replacement image
    """
    generation: int
    image_bytes: bytes


def decode_payload(payload: Union[bytes, bytearray, str]) -> bytes:
    """
    Normalize a service payload to encoded image bytes.

    Strings are treated as base64, with or without a data URL prefix.

    Raises:
        DecodeError: If a string payload is not valid base64
    """
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)

    if not isinstance(payload, str):
        raise DecodeError(f"Unsupported AI payload type: {type(payload)}")

    text = _DATA_URL_PATTERN.sub("", payload.strip(), count=1)
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"AI payload is not valid base64: {str(e)}") from e


def call_remove_background(
    remove_background: RemoveBackgroundFunction,
    request: AiRequest,
) -> AiRemovalResult:
    """
    Invoke the service for one request.

    Raises:
        ExternalServiceFailure: If the service raises or returns no image
        DecodeError: If a text payload is not base64
    """
    try:
        payload = remove_background(request.encoded_image)
    except ExternalServiceFailure:
        raise
    except Exception as e:
        raise ExternalServiceFailure(f"AI background removal failed: {str(e)}") from e

    if not payload:
        raise ExternalServiceFailure("AI background removal returned no image payload")

    image_bytes = decode_payload(payload)
    if not image_bytes:
        raise ExternalServiceFailure("AI background removal returned an empty image payload")

    logger.debug(
        f"AI service returned {len(image_bytes)} bytes for generation {request.generation}"
    )
    return AiRemovalResult(generation=request.generation, image_bytes=image_bytes)


def apply_ai_result(session: EditSession, result: AiRemovalResult) -> bool:
    """
    Apply a finished AI result to its session.

    Returns:
        True if applied, False if the result was stale and discarded

    Raises:
        DecodeError: If the payload is not a valid image (session unchanged)
    """
    return session.apply_ai_replacement(result.image_bytes, generation=result.generation)


def run_ai_removal(session: EditSession, remove_background: RemoveBackgroundFunction) -> bool:
    """Request, call and apply in one blocking step."""
    request = session.begin_ai_request()
    result = call_remove_background(remove_background, request)
    return apply_ai_result(session, result)


class AiRemovalRunner:
    """
    Runs AI removal calls on a worker pool.

    Only the service call runs on the worker; capturing the request and
    applying the result happen on the caller's thread.
    """

    def __init__(self, remove_background: RemoveBackgroundFunction, max_workers: int = 1):
        if not callable(remove_background):
            raise TypeError(f"remove_background must be callable, got {type(remove_background)}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self._remove_background = remove_background
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="ai-removal",
        )

    def submit(self, session: EditSession) -> concurrent.futures.Future:
        """
        Start an AI removal for the session's current base layer.

        Returns:
            Future resolving to an AiRemovalResult, or raising
            ExternalServiceFailure / DecodeError
        """
        request = session.begin_ai_request()
        logger.debug(f"Submitting AI removal for generation {request.generation}")
        return self._executor.submit(call_remove_background, self._remove_background, request)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AiRemovalRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)
