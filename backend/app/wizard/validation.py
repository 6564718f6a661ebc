"""Per-step validation gates.

Each gate returns {field: message}; an empty dict means the step may be
left going forward. Step 1's error is anchored to the step itself
(`project_type` is the step's only control).
"""

from app.schemas.validators import is_valid_email
from app.wizard.files import model_file_error, reference_images_error

MSG_PROJECT_TYPE = "Please select a project type before continuing."
MSG_NAME = "Please enter your name."
MSG_EMAIL_REQUIRED = "Please enter your email address."
MSG_EMAIL_INVALID = "Please enter a valid email address."
MSG_MATERIAL = "Please select a material before continuing."
MSG_SIZE = "Please select a size before continuing."
MSG_TERMS = "Please accept the Terms of Service to continue."
MSG_TOO_LONG = "Please keep this under {limit} characters."

# Free-text limits per step, matching the draft columns.
TEXT_LIMITS = {
    2: {"name": 200, "email": 255, "phone": 50},
    3: {"description": 5000},
    4: {"budget": 50, "description": 5000},
}

# Fields in on-screen order; the first invalid one receives focus.
FIELD_ORDER = (
    "project_type", "name", "email", "phone", "model_file", "reference_images",
    "description", "material", "size", "budget", "terms",
)


def step_errors(fields, step: int) -> dict[str, str]:
    errors: dict[str, str] = {}

    if step == 1:
        if not fields.project_type:
            errors["project_type"] = MSG_PROJECT_TYPE

    elif step == 2:
        name = (fields.name or "").strip()
        email = (fields.email or "").strip()
        if not name:
            errors["name"] = MSG_NAME
        if not email:
            errors["email"] = MSG_EMAIL_REQUIRED
        elif not is_valid_email(email):
            errors["email"] = MSG_EMAIL_INVALID

    elif step == 4:
        if not fields.material:
            errors["material"] = MSG_MATERIAL
        if not fields.size:
            errors["size"] = MSG_SIZE

    for field, limit in TEXT_LIMITS.get(step, {}).items():
        if field not in errors and len(getattr(fields, field) or "") > limit:
            errors[field] = MSG_TOO_LONG.format(limit=limit)

    # step 3 has no required fields; step 5 is gated by submission_errors
    return errors


def submission_errors(state) -> dict[str, str]:
    """Every step gate again, plus files and the terms checkbox."""
    errors: dict[str, str] = {}
    for step in (1, 2, 4):
        errors.update(step_errors(state.fields, step))

    if state.model_file is not None:
        message = model_file_error(state.model_file)
        if message:
            errors["model_file"] = message
    message = reference_images_error(state.reference_images)
    if message:
        errors["reference_images"] = message

    if not state.terms_accepted:
        errors["terms"] = MSG_TERMS
    return errors


def first_invalid(errors: dict[str, str]) -> str | None:
    for name in FIELD_ORDER:
        if name in errors:
            return name
    return next(iter(errors), None)
