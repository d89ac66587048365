"""Controller / Orchestrator for one assistant session.

AnswerPipeline turns an utterance into a reply (search, resolve, retrieve,
assemble, generate) and degrades each stage independently. Controller owns the
session side: the listening/thinking/speaking state machine, the one-turn-at-a-time
rule, cancellation, and the append-only history kept by SessionManager.
"""
import asyncio
import functools
from typing import Any, Awaitable, Callable, List, Optional

from .config import Config
from .generate import GenerationClient
from .prompt_builder import PromptBuilder
from .retrieval import ContextRetriever
from .search import CatalogSearch
from .session import SessionManager
from .speech import NullSpeechOutput, SpeechInput, SpeechOutput
from ..data.catalog import CatalogStore, get_catalog_store
from ..nlu.scorer import resolve
from ..schemas.io_models import AssistantStatus, ProductRecord, TurnResult
from ..utils.logger import get_logger
from ..utils.normalize import normalize_product

logger = get_logger()

EMPTY_INPUT_MESSAGE = "Sorry, I didn't catch that. Could you say it again?"
BUSY_MESSAGE = "I'm still working on your previous question. One moment, please."
APOLOGY_MESSAGE = "Sorry, I couldn't generate an answer right now. Please try again in a moment."
SUGGESTIONS_MESSAGE = (
    "I couldn't find a matching product. Try a product type (headphones, chair, watch), "
    "a category or a price range."
)
NOTHING_TO_RETRY_MESSAGE = "There is no previous question to retry yet."

Runner = Callable[..., Awaitable[Any]]


class TurnCancelled(Exception):
    """The turn was stopped; whatever it produced must be discarded."""


async def run_in_executor(fn, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))


def _optional(factory, label):
    try:
        return factory()
    except ValueError as e:
        logger.warning(f"[CONTROLLER] {label} disabled: {e}")
        return None


class AnswerPipeline:
    """Stateless answer flow over injected search, retrieval and completion clients."""

    def __init__(self, search: CatalogSearch = None, retriever: ContextRetriever = None,
                 builder: PromptBuilder = None, gen_client: GenerationClient = None):
        self.search = search or CatalogSearch()
        self.retriever = retriever if retriever is not None else _optional(ContextRetriever, "retrieval")
        self.builder = builder or PromptBuilder()
        self.gen_client = gen_client if gen_client is not None else _optional(GenerationClient, "generation")

    async def _attempt(self, run: Runner, stage: str, default, fn, *args):
        try:
            return await run(fn, *args)
        except TurnCancelled:
            raise
        except Exception as e:
            logger.warning(f"[WORKFLOW] {stage} degraded: {e}")
            return default

    async def _complete(self, run: Runner, prompt: str) -> str:
        if self.gen_client is None:
            return ""
        text = await self._attempt(run, "completion", "", self.gen_client.complete, prompt)
        return (text or "").strip()

    async def answer(self, text: str, fallback_product: Any = None, run: Runner = None) -> TurnResult:
        run = run or run_in_executor

        logger.info(f"[WORKFLOW] 1. Searching catalog for: '{text}'")
        raw = await self._attempt(run, "search", [], self.search.search, text)
        candidates: List[ProductRecord] = [p for p in (normalize_product(c) for c in raw or []) if p]

        if candidates:
            product = resolve(candidates, text)
        else:
            product = normalize_product(fallback_product)
        logger.info(f"[WORKFLOW] 2. {len(candidates)} candidate(s), resolved: "
                    f"{product.name if product else None}")

        if product is None and candidates:
            return TurnResult(
                reply=self.builder.format_candidates(candidates),
                outcome="clarify",
                candidates=[c.id for c in candidates[:3]],
            )

        if product is None:
            reply = await self._complete(run, self.builder.build_suggestions_prompt(text))
            return TurnResult(reply=reply or SUGGESTIONS_MESSAGE, outcome="suggestions")

        chunks = []
        if self.retriever is not None:
            chunks = await self._attempt(run, "retrieval", [], self.retriever.retrieve, text, product.id)
        logger.info(f"[WORKFLOW] 3. {len(chunks)} context chunk(s) for {product.id}")

        reply = await self._complete(run, self.builder.build_prompt(product, chunks, text))
        outcome = "answered"
        if not reply:
            logger.info("[WORKFLOW] 4. Grounded prompt unanswered, trying the simple prompt")
            reply = await self._complete(run, self.builder.build_simple_prompt(product.name, text))
            outcome = "fallback"
        if not reply:
            reply, outcome = APOLOGY_MESSAGE, "apology"

        return TurnResult(reply=reply, outcome=outcome, product_id=product.id, context_count=len(chunks))


class Controller:
    def __init__(self, session_id: str, pipeline: AnswerPipeline = None,
                 session_manager: SessionManager = None, catalog: CatalogStore = None,
                 speech_input: Optional[SpeechInput] = None, speech_output: Optional[SpeechOutput] = None,
                 error_reset_seconds: float = None, speak_timeout: float = None,
                 listen_timeout: float = None):
        self.session_id = session_id
        self.pipeline = pipeline or AnswerPipeline()
        self.session_manager = session_manager or SessionManager()
        self.catalog = catalog or get_catalog_store()
        self.speech_input = speech_input
        self.speech_output = speech_output or NullSpeechOutput()
        self.error_reset_seconds = Config.ERROR_RESET_SECONDS if error_reset_seconds is None else error_reset_seconds
        self.speak_timeout = Config.SPEAK_TIMEOUT_SECONDS if speak_timeout is None else speak_timeout
        self.listen_timeout = Config.LISTEN_TIMEOUT_SECONDS if listen_timeout is None else listen_timeout

        self.status = AssistantStatus.idle
        # bumped by stop(); work started under an older epoch is discarded
        self._epoch = 0
        self._turn_epoch: Optional[int] = None
        self._speech_task: Optional[asyncio.Future] = None
        self._listen_task: Optional[asyncio.Future] = None
        self._reset_handle: Optional[asyncio.TimerHandle] = None

        self.session_manager.create_session(session_id)

    @property
    def busy(self) -> bool:
        return self._turn_epoch is not None

    def _set_status(self, status: AssistantStatus) -> None:
        if status != self.status:
            logger.info(f"[STATE] {self.session_id}: {self.status.value} -> {status.value}")
        self.status = status

    def _enter_error(self) -> None:
        self._set_status(AssistantStatus.error)
        if self._reset_handle is not None:
            self._reset_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.error_reset_seconds, self._leave_error)

    def _leave_error(self) -> None:
        self._reset_handle = None
        if self.status == AssistantStatus.error:
            self._set_status(AssistantStatus.idle)

    def _runner(self, epoch: int) -> Runner:
        async def run(fn, *args):
            result = await run_in_executor(fn, *args)
            if epoch != self._epoch:
                raise TurnCancelled()
            return result
        return run

    def _record(self, role: str, content: str, product_id: Optional[str] = None) -> None:
        """Write one message (and the product context) to the session; store failures are logged only."""
        try:
            self.session_manager.add_message(self.session_id, role, content)
            if product_id:
                self.session_manager.set_product_context(self.session_id, product_id)
        except Exception as e:
            logger.error(f"[SESSION] {self.session_id}: could not record {role} message: {e}")

    async def _context_product(self, fallback_product: Any, run: Runner) -> Any:
        if fallback_product is not None:
            return fallback_product
        try:
            product_id = self.session_manager.get_product_context(self.session_id)
        except Exception as e:
            logger.warning(f"[SESSION] {self.session_id}: could not read product context: {e}")
            return None
        if not product_id:
            return None
        try:
            return await run(self.catalog.get_product, product_id)
        except TurnCancelled:
            raise
        except Exception as e:
            logger.warning(f"[CONTROLLER] could not load context product {product_id}: {e}")
            return None

    async def handle_query(self, query: str, fallback_product: Any = None, speak: bool = False) -> TurnResult:
        """
        Run one text turn.

        Args:
            query: The user's utterance
            fallback_product: Product to talk about when search finds nothing
                (defaults to the session's last product context)
            speak: Play the reply through the speech output

        Returns:
            TurnResult with the reply that was appended to the history
        """
        if self.busy:
            logger.info(f"[CONTROLLER] {self.session_id}: turn rejected, another one is in flight")
            return TurnResult(reply=BUSY_MESSAGE, outcome="busy")
        return await self._run_turn(query, fallback_product, speak, self._epoch)

    async def _run_turn(self, query: str, fallback_product: Any, speak: bool, epoch: int) -> TurnResult:
        text = (query or "").strip()
        if not text:
            if epoch == self._epoch:
                self._turn_epoch = None
                self._set_status(AssistantStatus.idle)
            return TurnResult(reply=EMPTY_INPUT_MESSAGE, outcome="empty_input")

        self._turn_epoch = epoch
        self._set_status(AssistantStatus.thinking)
        failed = False
        try:
            self._record("user", text)
            run = self._runner(epoch)
            context = await self._context_product(fallback_product, run)
            result = await self.pipeline.answer(text, context, run)
        except TurnCancelled:
            logger.info(f"[CONTROLLER] {self.session_id}: turn stopped, result discarded")
            return TurnResult(reply="", outcome="cancelled")
        except Exception as e:
            logger.error(f"[CONTROLLER] {self.session_id}: turn failed: {e}", exc_info=True)
            result = TurnResult(reply=APOLOGY_MESSAGE, outcome="apology")
            failed = True

        try:
            if epoch != self._epoch:
                return TurnResult(reply="", outcome="cancelled")

            self._record("assistant", result.reply, result.product_id)
            logger.info(f"[WORKFLOW] 5. Turn finished: {result.outcome}")

            if failed:
                self._enter_error()
            elif result.reply and speak:
                await self._speak(result.reply, epoch)
            else:
                self._set_status(AssistantStatus.idle)
            return result
        finally:
            if self._turn_epoch == epoch:
                self._turn_epoch = None
                if self.status == AssistantStatus.thinking:
                    self._enter_error()

    async def _speak(self, text: str, epoch: int) -> None:
        self._set_status(AssistantStatus.speaking)
        self._speech_task = asyncio.ensure_future(self.speech_output.speak(text))
        try:
            await asyncio.wait_for(self._speech_task, timeout=self.speak_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[SPEECH] playback exceeded {self.speak_timeout}s, stopping it")
            self.speech_output.cancel()
        except asyncio.CancelledError:
            if epoch == self._epoch:
                raise
            return
        except Exception as e:
            logger.warning(f"[SPEECH] playback failed: {e}")
            if epoch == self._epoch:
                self._enter_error()
            return
        finally:
            self._speech_task = None
        if epoch == self._epoch:
            self._set_status(AssistantStatus.idle)

    async def listen_and_answer(self, fallback_product: Any = None) -> TurnResult:
        """Capture one utterance, answer it and speak the reply."""
        if self.busy:
            return TurnResult(reply=BUSY_MESSAGE, outcome="busy")
        if self.speech_input is None:
            raise RuntimeError("No speech input configured for this session")

        epoch = self._epoch
        self._turn_epoch = epoch
        self._set_status(AssistantStatus.listening)
        self._listen_task = asyncio.ensure_future(self.speech_input.listen())
        try:
            utterance = await asyncio.wait_for(self._listen_task, timeout=self.listen_timeout)
        except asyncio.TimeoutError:
            logger.info(f"[SPEECH] no speech within {self.listen_timeout}s")
            self.speech_input.cancel()
            utterance = ""
        except asyncio.CancelledError:
            if epoch == self._epoch:
                raise
            return TurnResult(reply="", outcome="cancelled")
        except Exception as e:
            logger.warning(f"[SPEECH] capture failed: {e}")
            utterance = ""
        finally:
            self._listen_task = None

        if epoch != self._epoch:
            return TurnResult(reply="", outcome="cancelled")
        return await self._run_turn(utterance, fallback_product, True, epoch)

    def stop(self) -> None:
        """Abort listening and playback and go idle; in-flight calls are left to finish unseen."""
        self._epoch += 1
        self._turn_epoch = None
        self.speech_output.cancel()
        if self.speech_input is not None:
            self.speech_input.cancel()
        for task in (self._speech_task, self._listen_task):
            if task is not None and not task.done():
                task.cancel()
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
        self._set_status(AssistantStatus.idle)

    async def retry_last(self, fallback_product: Any = None, speak: bool = False) -> TurnResult:
        last = self.session_manager.last_user_message(self.session_id)
        if last is None:
            return TurnResult(reply=NOTHING_TO_RETRY_MESSAGE, outcome="empty_input")
        return await self.handle_query(last, fallback_product, speak)

    def reset(self) -> None:
        """Forget the conversation and the product context."""
        self.stop()
        self.session_manager.clear_session(self.session_id)
        self.session_manager.create_session(self.session_id)

    def get_messages(self):
        return self.session_manager.get_messages(self.session_id)
