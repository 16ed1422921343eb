from datetime import date, datetime

from flask import jsonify


def validation_failed(errors):
    return jsonify(success=False, message="Validation failed", errors=errors), 422


def clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def optional_str(data, field, errors, max_len=255):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str) or (max_len is not None and len(value) > max_len):
        limit = f" of at most {max_len} characters" if max_len is not None else ""
        errors[field] = [f"The {field} must be a string{limit}."]
        return None
    return value.strip() or None


def required_str(data, field, errors, max_len=255):
    value = clean(data.get(field))
    if not value:
        errors[field] = [f"The {field} field is required."]
        return None
    if len(value) > max_len:
        errors[field] = [f"The {field} may not be greater than {max_len} characters."]
        return None
    return value


def optional_date(data, field, errors):
    """YYYY-MM-DD, or a full ISO timestamp trimmed to its date."""
    value = data.get(field)
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
            except ValueError:
                pass
    errors[field] = [f"The {field} is not a valid date."]
    return None


def optional_number(data, field, errors, minimum=None, maximum=None, integer=False):
    value = data.get(field)
    if value is None or value == "":
        return None

    number = None
    if not isinstance(value, bool):
        try:
            number = int(value) if integer else float(value)
        except (TypeError, ValueError):
            number = None
        if integer and isinstance(value, float) and not value.is_integer():
            number = None
    if number is None:
        kind = "an integer" if integer else "a number"
        errors[field] = [f"The {field} must be {kind}."]
        return None

    if minimum is not None and number < minimum:
        errors[field] = [f"The {field} must be at least {minimum}."]
        return None
    if maximum is not None and number > maximum:
        errors[field] = [f"The {field} may not be greater than {maximum}."]
        return None
    return number


def optional_bool(data, field, errors):
    value = data.get(field)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if value in (0, 1, "0", "1"):
        return bool(int(value))
    errors[field] = [f"The {field} field must be true or false."]
    return None


def choice(data, field, allowed, errors):
    value = data.get(field)
    if value is None:
        return None
    if value not in allowed:
        errors[field] = [f"The selected {field} is invalid."]
        return None
    return value
