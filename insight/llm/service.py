"""
Enhanced LLM Service

The single entry point agents use to turn a prompt into structured
insight. EnhancedLLMService composes the response cache, model selection,
the batch processor and the strict-JSON decorator in front of one backend
provider, and adds progress reporting, simulated streaming, feedback
collection and A/B variant selection.

Upstream failures never escape analyze(): once retries are exhausted the
caller receives an AnalysisError result instead (unless fail_fast is
configured). Invalid options and missing configuration still raise.

Usage:
    >>> from insight.llm import EnhancedLLMService, RequestOptions
    >>>
    >>> with EnhancedLLMService() as service:
    ...     result = service.analyze(
    ...         "List unmet needs for: AI agent",
    ...         "keyword_analysis",
    ...         RequestOptions(format="json")
    ...     )
"""

import copy
import random
import time
import uuid
import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from insight.llm.config import LLMConfig
from insight.llm.errors import LLMError, AnalysisFailedError, DeadlineExceededError
from insight.llm.providers.base import (
    BaseLLMProvider,
    Message,
    RequestOptions,
    UnrecognizedEnvelope,
    VALID_TIERS,
    build_system_prompt,
)
from insight.llm.factory import LLMProviderFactory
from insight.llm.format_enforcer import JsonEnforcedProvider
from insight.llm.json_repair import repair_json, JSONRepairError
from insight.llm.cache import CacheManager, MISS, fingerprint
from insight.llm.model_selection import ModelSelectionService
from insight.llm.batch import BatchProcessor
from insight.llm.progress import ProgressTracker
from insight.llm.streaming import deliver_chunks
from insight.llm.experiments import ABTestConfig
from insight.llm.feedback import FeedbackRecord, FeedbackStore
from insight.llm.retry import Deadline, RetryContext, retry_llm_call


logger = logging.getLogger(__name__)


POOR_RATING = 3


class AnalysisError(BaseModel):
    """Structured error result returned by analyze() on upstream failure.

    Serialises (by alias) to
    ``{error, message, modelType, endpoint, retryCount, requestId}``.
    """
    model_config = ConfigDict(populate_by_name=True)

    error: str
    message: str
    model_type: str = Field("", alias="modelType")
    endpoint: str = ""
    retry_count: int = Field(0, alias="retryCount")
    request_id: str = Field("", alias="requestId")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


AnalysisResult = Union[Dict[str, Any], List[Any], AnalysisError]


def is_error(result: Any) -> bool:
    """True when an analyze() result is an AnalysisError."""
    return isinstance(result, AnalysisError)


@dataclass
class UpstreamOutcome:
    """Text or error from one logical upstream call, with retries used."""
    text: Optional[str] = None
    error: Optional[LLMError] = None
    retries: int = 0


class EnhancedLLMService:
    """LLM access facade.

    Request flow for analyze():
    1. Build messages and resolve options (A/B variant, then model)
    2. Serve from cache when possible
    3. Dispatch: stream, batch, or call directly, retrying transient errors
    4. Parse, cache, record feedback and report 100% progress

    Attributes:
        config: Effective configuration
        provider: JSON-enforcing wrapper around the backend provider
        cache: Response cache
        model_selector: Tier-based model selection
        batch_processor: Request coalescing
        progress: Progress tracker and listeners
        feedback: Recent analyses available for rating
        escalation_hints: Advisory tier escalations from poor ratings
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider: Optional[BaseLLMProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None
    ):
        """Initialize the service.

        Args:
            config: LLM configuration (environment + defaults when omitted)
            provider: Backend provider (built by the factory when omitted)
            sleep: Sleep function for backoff and stream delays
            clock: Monotonic clock for deadlines, cache TTL and progress
            rng: Random source for A/B draws and stream chunking

        Raises:
            ConfigurationError: If the provider cannot be configured
        """
        self.config = config or LLMConfig.load_from_dict({})
        service_settings = self.config.service

        if provider is None:
            provider = LLMProviderFactory(self.config).create_provider()

        self._sleep = sleep
        self._clock = clock
        self._rng = rng or random.Random()

        self.provider = JsonEnforcedProvider(
            provider,
            max_json_retries=service_settings.max_json_retries,
            sleep=sleep
        )
        self.cache = CacheManager(
            max_entries=self.config.cache.max_entries,
            ttl_seconds=self.config.cache.ttl_seconds,
            clock=clock
        )
        self.model_selector = ModelSelectionService(
            self.config.tiers,
            enabled=service_settings.auto_model_selection,
            default_model=self.config.provider.model
        )
        self.batch_processor = BatchProcessor(
            dispatch=self._call_upstream,
            max_batch_size=self.config.batch.max_batch_size,
            batch_window_ms=self.config.batch.batch_window_ms,
            enabled=self.config.batch.enabled
        )
        self.progress = ProgressTracker(clock=clock)
        self.feedback = FeedbackStore(service_settings.feedback_capacity)
        self.escalation_hints: Deque[Dict[str, Any]] = deque(maxlen=service_settings.feedback_capacity)

        self._ab_test: Optional[ABTestConfig] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._closed = False

        logger.info(
            f"LLM service initialized with provider {self.provider.get_name()} "
            f"(cache={'on' if self.config.cache.enabled else 'off'}, "
            f"batch={'on' if self.config.batch.enabled else 'off'})"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(
        self,
        prompt: str,
        analysis_type: str,
        options: Optional[RequestOptions] = None,
        *,
        on_chunk: Optional[Callable[[str], None]] = None,
        progress_callback: Optional[Callable[[dict], None]] = None,
        request_id: Optional[str] = None
    ) -> AnalysisResult:
        """Analyze a prompt.

        Args:
            prompt: User prompt
            analysis_type: Label for logs and feedback (e.g. keyword_analysis)
            options: Request options
            on_chunk: Receives streamed chunks when streaming
            progress_callback: Receives progress events for this request
            request_id: Caller-chosen request id (generated when omitted)

        Returns:
            Parsed result (dict or list), or AnalysisError on upstream failure

        Raises:
            AnalysisFailedError: On upstream failure when fail_fast is set
            ValueError: For invalid options or A/B overrides
        """
        request_id = request_id or f"req_{uuid.uuid4().hex[:16]}"
        self.progress.start(request_id, progress_callback)

        try:
            return self._analyze(
                prompt, analysis_type, options or RequestOptions(),
                request_id, on_chunk, progress_callback
            )
        finally:
            self.progress.discard(request_id)

    def analyze_batch(
        self,
        prompts: Sequence[str],
        analysis_type: str,
        options: Optional[RequestOptions] = None
    ) -> List[AnalysisResult]:
        """Analyze several prompts concurrently.

        Results come back in input order; each is a parsed result or an
        AnalysisError.
        """
        executor = self._get_executor()
        futures = [
            executor.submit(self.analyze, prompt, analysis_type, options)
            for prompt in prompts
        ]
        return [future.result() for future in futures]

    def submit_feedback(self, request_id: str, rating: int, comment: Optional[str] = None) -> bool:
        """Rate a recorded analysis.

        Returns:
            True if the record was found and updated
        """
        record = self.feedback.rate(request_id, rating, comment)
        if record is None:
            logger.warning(f"No feedback record for request {request_id}")
            return False

        logger.info(f"Feedback received for {request_id}: rating={rating}")

        if self.config.service.self_optimize and rating < POOR_RATING:
            self._record_escalation_hint(record)

        return True

    def configure_ab_test(self, test_id: str, variants: Sequence[Any]) -> ABTestConfig:
        """Enable an A/B test.

        Args:
            test_id: Test identifier
            variants: ABVariant instances or dicts with id, option_overrides
                (or optionOverrides) and weight

        Raises:
            pydantic.ValidationError: For empty variants or non-positive weights
        """
        ab_test = ABTestConfig(test_id=test_id, variants=list(variants))
        with self._lock:
            self._ab_test = ab_test
        logger.info(f"A/B test {test_id} configured with {len(ab_test.variants)} variants")
        return ab_test

    def clear_ab_test(self):
        with self._lock:
            self._ab_test = None
        logger.info("A/B test cleared")

    def on(self, event: str, listener: Callable[[dict], None]):
        """Register a listener for service events ("progress")."""
        self.progress.on(event, listener)

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of cache, batch, request, feedback and A/B state."""
        ab_test = self._ab_test
        cache_stats = self.cache.stats()
        cache_stats["enabled"] = self.config.cache.enabled
        return {
            "provider": self.provider.get_name(),
            "cache": cache_stats,
            "batch": self.batch_processor.stats(),
            "active_requests": self.progress.active_count(),
            "feedback_count": len(self.feedback),
            "escalation_hints": len(self.escalation_hints),
            "model_selection": self.model_selector.get_config(),
            "ab_test": None if ab_test is None else {
                "test_id": ab_test.test_id,
                "variants": [v.id for v in ab_test.variants],
            },
        }

    def close(self):
        """Flush pending batches and release worker threads."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            executor, self._executor = self._executor, None

        self.batch_processor.close()
        if executor is not None:
            executor.shutdown(wait=True)
        logger.info("LLM service closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    def _analyze(
        self,
        prompt: str,
        analysis_type: str,
        options: RequestOptions,
        request_id: str,
        on_chunk: Optional[Callable[[str], None]],
        progress_callback: Optional[Callable[[dict], None]]
    ) -> AnalysisResult:
        def report(progress: int):
            self.progress.update(request_id, progress, progress_callback)

        options, variant_id = self._resolve_options(options)
        messages = [
            Message(role="system", content=build_system_prompt(options)),
            Message(role="user", content=prompt),
        ]
        model = self.model_selector.select_model(messages, options)
        options = options.with_overrides(model=model)
        deadline = Deadline(options.timeout_budget, clock=self._clock)

        logger.info(f"Starting LLM analysis [{request_id}] task={analysis_type} model={model}")
        logger.debug(f"Analysis prompt [{request_id}]: {prompt[:200]}")
        report(10)

        use_cache = self.config.cache.enabled and options.enable_cache
        cache_key = fingerprint(messages, options, model) if use_cache else None
        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not MISS:
                logger.debug(f"Serving [{request_id}] from cache")
                report(100)
                return copy.deepcopy(cached)

        report(20)

        stream = options.stream if options.stream is not None else self.config.service.stream_by_default
        if stream and on_chunk is not None:
            outcome = self._stream(messages, options, on_chunk, report, deadline)
        else:
            report(30)
            if self.config.batch.enabled and options.batch:
                outcome = self._submit_batched(messages, options, deadline)
            else:
                outcome = self._call_upstream(messages, options, deadline=deadline)
            report(90)

        if outcome.error is not None:
            return self._error_result(outcome, request_id, model)

        result = self._parse_response(outcome.text, options)

        if use_cache:
            self.cache.set(cache_key, copy.deepcopy(result))

        if self.config.service.collect_feedback:
            self.feedback.add(FeedbackRecord(
                request_id=request_id,
                prompt=prompt,
                response=copy.deepcopy(result),
                model=model,
                variant_id=variant_id,
            ))

        report(100)
        logger.info(f"LLM analysis complete [{request_id}] (retries={outcome.retries})")
        return result

    def _resolve_options(self, options: RequestOptions):
        variant_id = None
        ab_test = self._ab_test
        if ab_test is not None:
            variant = ab_test.select_variant(self._rng)
            variant_id = variant.id
            options = options.with_overrides(**variant.option_overrides)
            logger.debug(f"Applied A/B variant {variant.id} of test {ab_test.test_id}")

        # JSON requests are strict unless the caller opts out
        if options.format == "json" and options.strict_format is None:
            options = options.with_overrides(strict_format=True)

        return options, variant_id

    def _stream(self, messages, options, on_chunk, report, deadline) -> UpstreamOutcome:
        report(30)
        if self.provider.supports_native_streaming:
            outcome = self._call_upstream(messages, options, on_chunk=on_chunk, deadline=deadline)
        else:
            outcome = self._call_upstream(messages, options, deadline=deadline)
            if outcome.error is None:
                deliver_chunks(
                    outcome.text,
                    on_chunk,
                    delay=self.config.service.stream_chunk_delay,
                    sleep=self._sleep,
                    on_progress=lambda fraction: report(30 + int(fraction * 60)),
                    rng=self._rng
                )
        report(90)
        return outcome

    def _submit_batched(self, messages, options, deadline: Deadline) -> UpstreamOutcome:
        """Route through the batch processor, waiting no longer than the deadline."""
        try:
            return self.batch_processor.submit_and_wait(messages, options, deadline=deadline)
        except DeadlineExceededError as e:
            logger.warning(f"Batched request gave up waiting: {e}")
            return UpstreamOutcome(error=e)

    def _call_upstream(
        self,
        messages: Sequence[Message],
        options: RequestOptions,
        on_chunk: Optional[Callable[[str], None]] = None,
        deadline: Optional[Deadline] = None
    ) -> UpstreamOutcome:
        """One logical upstream call with transient retries and format enforcement."""
        deadline = deadline or Deadline(options.timeout_budget, clock=self._clock)
        retry_ctx = RetryContext(
            max_attempts=options.max_retries,
            base_delay=options.retry_delay,
            deadline=deadline,
            sleep=self._sleep
        )
        format_retries = []

        def call_provider():
            if on_chunk is not None:
                return self.provider.stream_call(messages, options, on_chunk)
            try:
                return self.provider.call(messages, options, deadline=deadline)
            finally:
                format_retries.append(self.provider.last_retry_count)

        try:
            text = retry_llm_call(call_provider, retry_ctx=retry_ctx)
        except LLMError as e:
            return UpstreamOutcome(error=e, retries=retry_ctx.retries + sum(format_retries))

        return UpstreamOutcome(text=text, retries=retry_ctx.retries + sum(format_retries))

    @staticmethod
    def _parse_response(text: str, options: RequestOptions) -> Any:
        if isinstance(text, UnrecognizedEnvelope):
            envelope = text.envelope
            return envelope if isinstance(envelope, (dict, list)) else {"raw": str(text)}

        if options.format == "json":
            try:
                return repair_json(text)
            except JSONRepairError:
                logger.warning("Response is not valid JSON; returning raw text")
                return {"raw": text}

        return {"content": text}

    def _error_result(self, outcome: UpstreamOutcome, request_id: str, model: str) -> AnalysisError:
        error = outcome.error
        result = AnalysisError(
            error=type(error).__name__,
            message=str(error),
            model_type=model,
            endpoint=getattr(error, "endpoint", None) or self.provider.get_endpoint(),
            retry_count=outcome.retries,
            request_id=request_id,
        )
        logger.error(
            f"LLM analysis failed [{request_id}] after {outcome.retries} retries: "
            f"{result.error}: {result.message}"
        )

        if self.config.service.fail_fast:
            raise AnalysisFailedError(result.message, result=result) from error
        return result

    def _record_escalation_hint(self, record: FeedbackRecord):
        current = next(
            (tier for tier in VALID_TIERS if self.model_selector.tiers.get(tier) == record.model),
            None
        )
        if current is None or current == VALID_TIERS[-1]:
            suggested = VALID_TIERS[-1]
        else:
            suggested = VALID_TIERS[VALID_TIERS.index(current) + 1]

        hint = {
            "request_id": record.request_id,
            "model": record.model,
            "current_tier": current,
            "suggested_tier": suggested,
            "rating": record.rating,
        }
        with self._lock:
            self.escalation_hints.append(hint)
        logger.info(
            f"Poor rating for {record.request_id} on {record.model}; "
            f"consider escalating similar prompts to the {suggested} tier"
        )

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.service.max_workers,
                    thread_name_prefix="llm-analyze"
                )
            return self._executor
