"""In-process DraftGateway backed directly by the draft store.

Each call runs in its own session and transaction, the same way a request
through `get_db()` would.
"""

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.middleware.exceptions import QuoteWizardException
from app.schemas.quote_draft import DraftFields, DraftLookup, IdentityOut
from app.services import draft_store
from app.wizard.gateways import PersistenceError, SaveResult, SessionDraft
from app.wizard.state import WizardFields


class StoreDraftGateway:
    def __init__(self, session_factory, session_key: str, identity: IdentityOut | None = None):
        self.session_factory = session_factory
        self.session_key = session_key
        self.identity = identity

    async def _run(self, fn, *args, **kwargs):
        async with self.session_factory() as db:
            try:
                result = await fn(db, *args, **kwargs)
                await db.commit()
                return result
            except (SQLAlchemyError, QuoteWizardException) as e:
                await db.rollback()
                raise PersistenceError(str(e)) from e

    async def load_session(self) -> SessionDraft:
        draft = await self._run(draft_store.fetch_by_session, self.session_key)
        return SessionDraft(draft=draft, identity=self.identity)

    async def load_by_id(self, draft_id: str) -> DraftLookup:
        return await self._run(draft_store.fetch_by_id, draft_id)

    async def save(self, fields: WizardFields, step: int, draft_id: str | None) -> SaveResult:
        try:
            payload = DraftFields.model_validate(fields.as_dict())
        except ValidationError as e:
            raise PersistenceError(f"Draft fields rejected: {e}") from e
        result = await self._run(
            draft_store.upsert,
            self.session_key,
            payload,
            step,
            draft_id=draft_id,
        )
        return SaveResult(
            draft_id=result.draft_id,
            current_step=result.current_step,
            applied=result.applied,
        )

    async def delete(self) -> bool:
        return await self._run(draft_store.delete, self.session_key)

    async def complete(self, draft_id: str) -> bool:
        return await self._run(draft_store.complete, draft_id)
