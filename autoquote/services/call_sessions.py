"""Quote call sessions: place calls to several shops and collect their quotes."""

import asyncio
import time
import uuid
from datetime import datetime

from autoquote.clients.task_client import ExternalTaskClient
from autoquote.errors import PollTimeoutError, RemoteError
from autoquote.models.calls import CallResult
from autoquote.models.sessions import CallSession, SessionStatus, ShopSnapshot
from autoquote.models.shops import RepairShop
from autoquote.models.tasks import NormalizedStatus, QuoteCallRequest, TaskHandle, TaskKind, TaskStatus
from autoquote.services.background import BackgroundTasks
from autoquote.services.poller import poll_until_terminal
from autoquote.services.quote_ranking import analyze_and_rank
from autoquote.services.session_store import JsonSessionStore
from autoquote.telemetry.logger import get_logger
from autoquote.telemetry.orchestration_metrics import OrchestrationMetrics

ABANDONED_ERROR = "abandoned after restart"


class QuoteCallService:
    """Owns the lifecycle of quote call sessions.

    Each session gets one background poll loop that refreshes every call,
    persists the partial results after each round and ranks the quotes once
    all calls have ended.
    """

    def __init__(
        self,
        task_client: ExternalTaskClient,
        store: JsonSessionStore[CallSession],
        metrics: OrchestrationMetrics | None = None,
        demo_phone_numbers: list[str] | None = None,
        max_calls: int = 2,
        poll_interval: float = 5.0,
        max_wait: float = 600.0,
    ):
        self.task_client = task_client
        self.store = store
        self.metrics = metrics or OrchestrationMetrics()
        self.demo_phone_numbers = list(demo_phone_numbers or [])
        self.max_calls = max_calls
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.background = BackgroundTasks()
        self.logger = get_logger("autoquote.call_sessions")

    def _snapshot(self, index: int, shop: RepairShop) -> ShopSnapshot:
        phone = shop.phone_number
        if index < len(self.demo_phone_numbers):
            phone = self.demo_phone_numbers[index]
        return ShopSnapshot(name=shop.shop_name, phone=phone, address=shop.full_address)

    async def _place_call(
        self, slot: int, shop: ShopSnapshot, damage_description: str
    ) -> TaskHandle | RemoteError:
        request = QuoteCallRequest(
            phone_number=shop.phone,
            shop_name=shop.name,
            shop_address=shop.address,
            damage_description=damage_description,
            slot=slot,
        )
        try:
            return await self.task_client.create_task(TaskKind.QUOTE_CALL, request)
        except RemoteError as e:
            self.logger.error(
                "Failed to place quote call",
                extra={"shop_name": shop.name, "error": str(e), "operation": "quote_call_create"},
            )
            return e

    async def start_quote_calls(
        self,
        shops: list[RepairShop],
        damage_description: str,
        limit: int | None = None,
    ) -> CallSession:
        """Call up to ``limit`` shops concurrently and start tracking the session.

        Shops whose call could not be created are left out of the session.
        When no call could be placed at all the session is stored as failed.

        Args:
            shops: Shops in the order the user picked them
            damage_description: Damage to describe on the calls
            limit: Requested number of calls, capped by the configured maximum

        Returns:
            The new session (status calling, or failed)
        """
        cap = min(limit or self.max_calls, self.max_calls)
        targets = [self._snapshot(i, shop) for i, shop in enumerate(shops[:cap])]
        self.logger.info(
            "Initiating quote calls",
            extra={"shop_count": len(targets), "operation": "quote_session_start"},
        )

        outcomes = await asyncio.gather(
            *(self._place_call(slot, shop, damage_description) for slot, shop in enumerate(targets))
        )
        placed = [
            (shop, outcome)
            for shop, outcome in zip(targets, outcomes)
            if isinstance(outcome, TaskHandle)
        ]

        session = CallSession(
            session_id=f"session-{uuid.uuid4().hex}",
            call_ids=[handle.task_id for _, handle in placed],
            shops=[shop for shop, _ in placed],
            damage_description=damage_description,
        )
        if not placed:
            errors = "; ".join(str(o) for o in outcomes) or "no shops to call"
            session = session.model_copy(
                update={"status": SessionStatus.FAILED, "error": f"No calls could be placed: {errors}"}
            )
            self.store.persist(session.session_id, session)
            self.metrics.log_session("quote", session.session_id, "failed", 0)
            return session

        self.store.persist(session.session_id, session)
        self.metrics.log_session("quote", session.session_id, "started")
        self._spawn(session.session_id, self.max_wait)
        return session

    def _spawn(self, session_id: str, budget: float) -> None:
        self.background.spawn(self._run(session_id, budget), name=f"quote-session-{session_id}")

    async def _run(self, session_id: str, budget: float) -> None:
        start_time = time.time()
        try:
            await poll_until_terminal(
                lambda: self._check(session_id),
                poll_interval=self.poll_interval,
                max_wait=budget,
                label=f"call session {session_id}",
            )
        except asyncio.CancelledError:
            raise
        except PollTimeoutError as e:
            self._fail(session_id, str(e))
        except Exception as e:
            self.logger.error(
                "Call session polling crashed",
                extra={"session_id": session_id, "error": str(e), "operation": "quote_session_error"},
                exc_info=True,
            )
            self._fail(session_id, f"Polling failed: {e}")
        else:
            self.metrics.log_session("quote", session_id, "completed", time.time() - start_time)

    async def _check(self, session_id: str) -> TaskStatus:
        """One polling round over every call of the session."""
        session = self.store.load(session_id)
        if session is None:
            raise RemoteError("sessions", f"session {session_id} disappeared from the store")

        previous = {result.call_id: result for result in session.results or []}
        results: list[CallResult] = []
        all_terminal = True
        for call_id, shop in zip(session.call_ids, session.shops):
            try:
                status = await self.task_client.get_status(TaskKind.QUOTE_CALL, call_id)
            except RemoteError as e:
                # keep the other calls' progress, retry this one next round
                self.logger.warning(
                    "Call status check failed",
                    extra={
                        "session_id": session_id,
                        "call_id": call_id,
                        "error": str(e),
                        "operation": "quote_call_status",
                    },
                )
                placeholder = CallResult(
                    call_id=call_id, shop_name=shop.name, phone_number=shop.phone, status="unknown"
                )
                results.append(previous.get(call_id) or placeholder)
                all_terminal = False
                continue
            outcome = status.outcome
            if not isinstance(outcome, CallResult):
                outcome = CallResult(call_id=call_id, status=status.raw_status)
            results.append(
                outcome.model_copy(
                    update={"shop_name": shop.name, "phone_number": outcome.phone_number or shop.phone}
                )
            )
            all_terminal = all_terminal and status.is_terminal

        update: dict = {"results": results}
        if all_terminal:
            update["status"] = SessionStatus.COMPLETED
            update["analysis"] = analyze_and_rank(results)
        session = session.model_copy(update=update)
        self.store.persist(session_id, session)

        if all_terminal:
            self.logger.info(
                "Call session completed",
                extra={"session_id": session_id, "call_count": len(results), "operation": "quote_session_complete"},
            )
        return TaskStatus(
            kind=TaskKind.QUOTE_CALL,
            task_id=session_id,
            raw_status=session.status.value,
            status=NormalizedStatus.SUCCEEDED if all_terminal else NormalizedStatus.PENDING,
        )

    def _fail(self, session_id: str, error: str) -> None:
        session = self.store.load(session_id)
        if session is None:
            return
        session = session.model_copy(update={"status": SessionStatus.FAILED, "error": error})
        self.store.persist(session_id, session)
        self.metrics.log_session("quote", session_id, "failed", session.elapsed_seconds())

    def get_session(self, session_id: str) -> CallSession | None:
        return self.store.load(session_id)

    def list_sessions(self) -> list[CallSession]:
        return sorted(self.store.load_all().values(), key=lambda s: s.start_time, reverse=True)

    async def get_call_details(self, call_id: str) -> CallResult:
        """Fetch the current state of one call.

        Raises:
            RemoteError: If the voice service could not be reached
        """
        status = await self.task_client.get_status(TaskKind.QUOTE_CALL, call_id)
        if isinstance(status.outcome, CallResult):
            return status.outcome
        return CallResult(call_id=call_id, status=status.raw_status)

    def reconcile(self, now: datetime | None = None) -> dict[str, int]:
        """Resume or abandon sessions left in ``calling`` by a previous process.

        Returns:
            Counts of resumed and abandoned sessions
        """
        resumed = abandoned = 0
        for session_id, session in self.store.load_all().items():
            if session.status is not SessionStatus.CALLING:
                continue
            elapsed = session.elapsed_seconds(now)
            if not session.call_ids or elapsed >= self.max_wait:
                self._fail(session_id, ABANDONED_ERROR)
                abandoned += 1
            else:
                self._spawn(session_id, self.max_wait - elapsed)
                resumed += 1

        if resumed or abandoned:
            self.logger.info(
                "Call sessions reconciled",
                extra={"resumed": resumed, "abandoned": abandoned, "operation": "quote_session_reconcile"},
            )
        return {"resumed": resumed, "abandoned": abandoned}

    async def aclose(self) -> None:
        await self.background.cancel_all()
