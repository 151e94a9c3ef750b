# investment_tracker/services/validation_service.py
import re
from typing import Any, Dict, Iterable, Mapping, Optional

from investment_tracker.models.project import Project
from investment_tracker.models.user import User

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^(\+?\d{1,4}[\s-]?)?(\(?\d{1,5}\)?[\s-]?)?[\d\s-]{5,16}$")

MIN_PROJECT_NAME_LENGTH = 3

FOCAL_PERSON_FIELDS = ("focalPersonName", "focalPersonPhone", "focalPersonEmail")


class ProjectFormError(ValueError):
    '''A rejected add/edit form; `errors` is the same field -> message mapping validate_project_form returns.'''

    def __init__(self, errors: Mapping[str, str]):
        self.errors: Dict[str, str] = dict(errors)
        super().__init__("; ".join(self.errors.values()))


def _field(data: Mapping[str, Any], alias: str, attr: str) -> str:
    # form payloads may use store keys or attribute names
    value = data.get(alias, data.get(attr, ""))
    return value if isinstance(value, str) else ""


def name_taken(name: str, existing: Iterable[Project], exclude_id: Optional[str] = None) -> bool:
    '''Case- and whitespace-insensitive name collision check.'''
    normalized = name.strip().lower()
    return any(
        p.normalized_name == normalized and p.id != exclude_id
        for p in existing
    )


def validate_project_form(
    data: Mapping[str, Any],
    existing: Iterable[Project],
    exclude_id: Optional[str] = None,
) -> Dict[str, str]:
    """
    Validate an add/edit project form.

    :param data: form values keyed by store key (projectName) or attribute (project_name)
    :type data: Mapping[str, Any]
    :param existing: current project collection
    :type existing: Iterable[Project]
    :param exclude_id: id of the project being edited, ignored by the duplicate check
    :type exclude_id: Optional[str]
    :return: field (store key) -> message; empty when the form is valid
    :rtype: Dict[str, str]
    """
    errors: Dict[str, str] = {}

    name = _field(data, "projectName", "project_name")
    if not name.strip():
        errors["projectName"] = "Project Name is required."
    elif len(name) < MIN_PROJECT_NAME_LENGTH:
        errors["projectName"] = "Project Name must be at least 3 characters."
    elif name_taken(name, existing, exclude_id):
        errors["projectName"] = (
            "Another project with this name already exists."
            if exclude_id
            else "A project with this name already exists."
        )

    if not _field(data, "projectSector", "project_sector").strip():
        errors["projectSector"] = "Project Sector is required."

    if not _field(data, "focalPersonName", "focal_person_name").strip():
        errors["focalPersonName"] = "Focal Person Name is required."

    email = _field(data, "focalPersonEmail", "focal_person_email")
    if email and not EMAIL_PATTERN.match(email):
        errors["focalPersonEmail"] = "Please enter a valid email address."

    phone = _field(data, "focalPersonPhone", "focal_person_phone")
    if phone and not PHONE_PATTERN.match(phone):
        errors["focalPersonPhone"] = "Invalid phone format."

    return errors


def validate_user_form(username: str, password: str, existing: Iterable[User]) -> Optional[str]:
    '''Returns the message to show on the add-user form, or None when valid.'''
    if not (username or "").strip() or not (password or "").strip():
        return "Both username and password are required."
    wanted = username.strip().lower()
    if any(u.username.lower() == wanted for u in existing):
        return "Username already exists."
    return None


def focal_person_updates(name: str = "", phone: str = "", email: str = "") -> Dict[str, str]:
    '''Bulk focal-person edit: only typed-in fields are applied, blanks never clear data.'''
    updates: Dict[str, str] = {}
    for key, value in zip(FOCAL_PERSON_FIELDS, (name, phone, email)):
        if value and value.strip():
            updates[key] = value.strip()
    return updates


def validate_bulk_focal_update(updates: Mapping[str, Any]) -> Optional[str]:
    if not any(
        isinstance(updates.get(key), str) and updates[key].strip()
        for key in FOCAL_PERSON_FIELDS
    ):
        return "Please fill in at least one focal person field to update."
    return None
