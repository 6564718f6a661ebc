"""Initial state for a wizard page load.

  1. resume id given: load by id
       Gone     -> notice "already submitted", continue as a plain load
       NotFound -> continue as a plain load, silently
       Found    -> restore and open at the draft's step
  2. plain load: the session's active draft, or a fresh step 1
  3. identity name/email fill only fields that are still empty

Load failures are logged and produce a fresh wizard; they never raise.
"""

import logging

from app.schemas.quote_draft import DraftFound, DraftGone, IdentityOut
from app.wizard.gateways import DraftGateway, PersistenceError
from app.wizard.machine import PrefillIdentity, RestoreDraft, ShowNotice, reduce
from app.wizard.state import WizardState

logger = logging.getLogger(__name__)

ALREADY_SUBMITTED = "This quote has already been submitted. Starting a new quote."


async def initialize_wizard(
    drafts: DraftGateway,
    resume_id: str | None = None,
    identity: IdentityOut | None = None,
) -> WizardState:
    state = WizardState()
    draft = None

    if resume_id:
        try:
            lookup = await drafts.load_by_id(resume_id)
        except PersistenceError as e:
            logger.warning("Resume lookup for %s failed, using session draft: %s", resume_id, e)
            lookup = None
        if isinstance(lookup, DraftFound):
            draft = lookup.draft
        elif isinstance(lookup, DraftGone):
            state = reduce(state, ShowNotice(ALREADY_SUBMITTED)).state

    if draft is None:
        try:
            loaded = await drafts.load_session()
        except PersistenceError as e:
            logger.warning("Session draft lookup failed, starting fresh: %s", e)
        else:
            draft = loaded.draft
            identity = identity or loaded.identity

    if draft is not None:
        state = reduce(state, RestoreDraft(draft)).state

    if identity is not None:
        state = reduce(state, PrefillIdentity(identity.name, identity.email)).state

    return state
