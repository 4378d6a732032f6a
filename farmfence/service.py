# farmfence/service.py
from __future__ import annotations
from typing import Callable, Optional, TypeVar
from datetime import datetime, timezone
import logging
import uuid

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from farmfence import config, crud, schemas
from farmfence.activation import backfill_developer_links, repair_single_fence_farms, select_fence
from farmfence.db import SessionFactory, unit_of_work
from farmfence.errors import Conflict, IntegrityViolation, InvalidInput, Unavailable
from farmfence.naming import suffixed_name
from farmfence.selection import select_farms
from farmfence.utils import to_aware_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TokenFactory = Callable[[], str]
T = TypeVar("T")


def _new_token() -> str:
    return uuid.uuid4().hex


class FarmFenceService:
    """
    Entry point for farm and fence operations. Each call is one unit of work:
    it either commits completely or leaves storage untouched.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        *,
        clock: Clock | None = None,
        token_factory: TokenFactory | None = None,
        attempts: int | None = None,
        repair_on_read: bool | None = None,
    ):
        # DI
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token_factory = token_factory or _new_token
        self._attempts = max(1, attempts or config.TX_ATTEMPTS)
        self._repair_on_read = config.REPAIR_ON_READ if repair_on_read is None else repair_on_read

    def _now(self) -> datetime:
        return to_aware_utc(self._clock())

    def _run(self, name: str, op: Callable[[Session], T], *, retry_on_integrity: bool = False) -> T:
        """
        Run `op` in a fresh transaction, retrying the whole thing on storage
        hiccups (and, for creates, on unique-name races).
        """
        last_error: Exception | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                with unit_of_work(self._session_factory) as db:
                    return op(db)
            except OperationalError as e:
                last_error = e
                logger.warning("%s: storage error on attempt %d/%d: %s", name, attempt, self._attempts, e)
            except IntegrityError as e:
                if not retry_on_integrity:
                    raise
                last_error = e
                logger.warning("%s: uniqueness conflict on attempt %d/%d", name, attempt, self._attempts)

        if isinstance(last_error, IntegrityError):
            raise IntegrityViolation(f"{name} failed a uniqueness check after {self._attempts} attempts") from last_error
        raise Unavailable(f"{name} could not complete, try again") from last_error

    def _rename_conflict(self, owner_token: str, name: str, exists_for) -> Conflict:
        def propose(db: Session) -> str:
            return suffixed_name(name.strip(), exists_for(db, owner_token))

        return Conflict(name.strip(), self._run("propose name", propose))

    # ---------- farms ----------

    def list_farms(self, identity: schemas.Identity) -> list[schemas.FarmOut]:
        def op(db: Session):
            return [schemas.FarmOut.model_validate(f) for f in crud.list_farms(db, identity.token)]

        return self._run("list farms", op)

    def create_farm(self, identity: schemas.Identity, payload: schemas.FarmCreate) -> schemas.FarmOut:
        def op(db: Session):
            farm = crud.create_farm(db, identity, payload, now=self._now(), farm_token=self._token_factory())
            return schemas.FarmOut.model_validate(farm)

        return self._run("create farm", op, retry_on_integrity=True)

    def rename_farm(self, identity: schemas.Identity, farm_token: str, name: Optional[str]) -> schemas.FarmOut:
        def op(db: Session):
            return schemas.FarmOut.model_validate(crud.rename_farm(db, identity.token, farm_token, name))

        try:
            return self._run("rename farm", op)
        except IntegrityError:
            raise self._rename_conflict(identity.token, name, crud.farm_name_exists) from None

    def update_farm_gps(self, identity: schemas.Identity, farm_token: str, gps: Optional[str]) -> schemas.FarmOut:
        def op(db: Session):
            return schemas.FarmOut.model_validate(crud.update_farm_gps(db, identity.token, farm_token, gps))

        return self._run("update farm gps", op)

    def delete_farm(
        self,
        identity: schemas.Identity,
        farm_token: str,
        transfer_to_farm_token: Optional[str] = None,
    ) -> schemas.FarmDeleteResult:
        return self._run(
            "delete farm",
            lambda db: crud.delete_farm(db, identity, farm_token, transfer_to_farm_token),
        )

    def select_farms(
        self,
        identity: schemas.Identity,
        farm_token: Optional[str] = None,
        *,
        select_all: bool = False,
    ) -> list[str]:
        return self._run(
            "select farms",
            lambda db: select_farms(db, identity.token, farm_token, select_all=select_all),
        )

    # ---------- fences ----------

    def repair_fences(self) -> dict:
        def op(db: Session):
            return {
                "activated": repair_single_fence_farms(db),
                "developer_links": backfill_developer_links(db),
            }

        return self._run("repair fences", op)

    def list_fences(self, identity: schemas.Identity) -> list[schemas.FenceOut]:
        if self._repair_on_read:
            self.repair_fences()

        def op(db: Session):
            return [schemas.FenceOut.model_validate(f) for f in crud.list_fences(db, identity.token)]

        fences = self._run("list fences", op)
        logger.info("Account %s (%s) has %d fence(s)", identity.token, identity.role, len(fences))
        return fences

    def create_fence(self, identity: schemas.Identity, payload: schemas.FenceCreate) -> schemas.FenceOut:
        def op(db: Session):
            fence = crud.create_fence(db, identity, payload, now=self._now(), fence_token=self._token_factory())
            return schemas.FenceOut.model_validate(fence)

        return self._run("create fence", op, retry_on_integrity=True)

    def select_fence(
        self,
        identity: schemas.Identity,
        fence_token: Optional[str],
        farm_token: Optional[str] = None,
    ) -> schemas.FenceOut:
        if not fence_token:
            raise InvalidInput("Fence token is required")

        def op(db: Session):
            return schemas.FenceOut.model_validate(select_fence(db, identity.token, fence_token, farm_token))

        return self._run("select fence", op)

    def rename_fence(self, identity: schemas.Identity, fence_token: str, name: Optional[str]) -> schemas.FenceOut:
        def op(db: Session):
            return schemas.FenceOut.model_validate(crud.rename_fence(db, identity.token, fence_token, name))

        try:
            return self._run("rename fence", op)
        except IntegrityError:
            raise self._rename_conflict(identity.token, name, crud.fence_name_exists) from None

    def delete_fence(self, identity: schemas.Identity, fence_token: str) -> Optional[str]:
        return self._run("delete fence", lambda db: crud.delete_fence(db, identity.token, fence_token))
