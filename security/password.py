import bcrypt
from flask import current_app, has_app_context

BCRYPT_ROUNDS = 12


def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    # bcrypt expects bytes
    rounds = current_app.config.get("BCRYPT_ROUNDS", BCRYPT_ROUNDS) if has_app_context() else BCRYPT_ROUNDS
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        # malformed stored hash
        return False


def password_errors(password, confirmation, min_length: int = 8) -> list:
    """Validation messages for a new password; empty when acceptable."""
    errors = []
    if not isinstance(password, str) or not password:
        return ["The password field is required."]
    if len(password) < min_length:
        errors.append(f"The password must be at least {min_length} characters.")
    if len(password.encode("utf-8")) > 72:
        # bcrypt only hashes the first 72 bytes
        errors.append("The password may not be greater than 72 characters.")
    if password != confirmation:
        errors.append("The password confirmation does not match.")
    return errors
