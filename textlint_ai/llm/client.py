"""Asynchronous correction client with retry, batching and request sharing."""

from __future__ import annotations

import asyncio
import json
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ..errors import ConfigurationError, ParseError, TransientServiceError
from ..logging import excerpt, get_logger
from ..models import Change, CorrectionOptions, DetailedCorrection
from ..prompting import PromptBuilder
from .runner import LLMRunner

DEFAULT_DETAILED_CONFIDENCE = 0.8
FALLBACK_DETAILED_CONFIDENCE = 0.5


class CorrectionClient:
    """Talks to the correction service on behalf of the orchestrator.

    Identical ``(text, options)`` requests issued while one is still in flight
    share its result instead of hitting the service twice.
    """

    def __init__(
        self,
        runner: LLMRunner,
        prompt_builder: PromptBuilder | None = None,
        *,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        batch_size: int = 5,
        batch_pause: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self._sleep = sleep or asyncio.sleep
        self._in_flight: Dict[str, asyncio.Future[str]] = {}
        self.logger = get_logger("client")

    async def correct(
        self,
        text: str,
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Return the corrected text, sharing any identical in-flight request."""
        options = options or CorrectionOptions()
        key = options.cache_key(text)
        pending = self._in_flight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._shared_correction(key, text, options, cancel_event))
            self._in_flight[key] = pending
        else:
            self.logger.debug("Joining in-flight correction for %r", excerpt(text))
        return await asyncio.shield(pending)

    async def correct_detailed(
        self,
        text: str,
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> DetailedCorrection:
        options = options or CorrectionOptions()
        prompt = self.prompt_builder.build_detailed_prompt(text, options)
        response = await self._request_with_retry(prompt, json_mode=True, cancel_event=cancel_event)
        try:
            return self._parse_detailed(text, response)
        except ParseError as exc:
            self.logger.warning("Detailed correction was not valid JSON: %s", exc)
            return DetailedCorrection(
                corrected_text=response,
                original_text=text,
                changes=[],
                confidence=FALLBACK_DETAILED_CONFIDENCE,
                model=self.runner.model,
            )

    async def correct_batch(
        self,
        texts: Sequence[str],
        options: CorrectionOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> List[str]:
        """Correct ``texts`` in fixed-size concurrent chunks.

        The result is index-aligned with ``texts``. Items that fail, or that
        were not processed because of cancellation, keep their original text.
        """
        results = list(texts)
        for offset in range(0, len(texts), self.batch_size):
            if cancel_event is not None and cancel_event.is_set():
                break
            chunk = texts[offset : offset + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.correct(text, options, cancel_event=cancel_event) for text in chunk),
                return_exceptions=True,
            )
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Batch cancelled; discarding %d in-flight results", len(chunk))
                break
            for index, outcome in enumerate(outcomes):
                if isinstance(outcome, BaseException):
                    self.logger.warning("Batch item %d failed: %s", offset + index, outcome)
                    continue
                results[offset + index] = outcome or chunk[index]
            if offset + self.batch_size < len(texts):
                if not await self._pause(self.batch_pause, cancel_event):
                    break
        return results

    async def health_check(self) -> bool:
        try:
            response = await asyncio.to_thread(self.runner.run, "ping", max_tokens=5)
        except Exception as exc:  # noqa: BLE001 - any failure means unhealthy
            self.logger.warning("Health check failed: %s", exc)
            return False
        return bool(response)

    async def list_models(self) -> List[str]:
        return await asyncio.to_thread(self.runner.list_models)

    async def _shared_correction(
        self,
        key: str,
        text: str,
        options: CorrectionOptions,
        cancel_event: asyncio.Event | None,
    ) -> str:
        try:
            prompt = self.prompt_builder.build_prompt(text, options)
            return await self._request_with_retry(prompt, cancel_event=cancel_event)
        finally:
            self._in_flight.pop(key, None)

    async def _request_with_retry(
        self,
        prompt: str,
        *,
        json_mode: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                response = await asyncio.to_thread(self.runner.run, prompt, json_mode=json_mode)
            except ConfigurationError:
                raise
            except Exception as exc:  # noqa: BLE001 - every service failure is retried
                last_error = exc
            else:
                if response and response.strip():
                    return response
                last_error = TransientServiceError("Correction service returned an empty response")
            self.logger.warning(
                "Correction attempt %d/%d failed: %s", attempt, self.retry_attempts, last_error
            )
            if attempt < self.retry_attempts:
                delay = self.retry_delay * (2 ** (attempt - 1))
                if not await self._pause(delay, cancel_event):
                    break
        raise last_error or TransientServiceError("Correction failed after retries")

    async def _pause(self, delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep for ``delay`` seconds; return False if cancellation cut it short."""
        if cancel_event is None:
            await self._sleep(delay)
            return True
        if cancel_event.is_set():
            return False
        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        _, pending = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        return not cancel_event.is_set()

    def _parse_detailed(self, original: str, response: str) -> DetailedCorrection:
        try:
            payload = json.loads(response)
        except json.JSONDecodeError as exc:
            raise ParseError(str(exc)) from exc
        if not isinstance(payload, dict):
            raise ParseError("detailed correction must be a JSON object")

        corrected = payload.get("correctedText")
        changes: List[Change] = []
        raw_changes = payload.get("changes")
        if isinstance(raw_changes, list):
            for item in raw_changes:
                if not isinstance(item, dict):
                    continue
                explanation = item.get("explanation")
                changes.append(
                    Change(
                        type=str(item.get("type") or "spelling"),
                        original=str(item.get("original") or ""),
                        corrected=str(item.get("corrected") or ""),
                        explanation=explanation if isinstance(explanation, str) else None,
                    )
                )
        confidence = payload.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = DEFAULT_DETAILED_CONFIDENCE
        return DetailedCorrection(
            corrected_text=corrected if isinstance(corrected, str) and corrected else original,
            original_text=original,
            changes=changes,
            confidence=max(0.0, min(1.0, float(confidence))),
            model=self.runner.model,
        )


__all__ = ["CorrectionClient"]
