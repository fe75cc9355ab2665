from passlib.context import CryptContext


# Password hashing context
# - bcrypt is the default for new hashes
# - argon2 hashes are still verified if present
pwd_context = CryptContext(
    schemes=["bcrypt", "argon2"],
    default="bcrypt",
    deprecated=[],
    bcrypt__rounds=12,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    passlib detects the algorithm from the hash format.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password with the default scheme (bcrypt)."""
    return pwd_context.hash(password)
