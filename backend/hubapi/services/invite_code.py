import secrets, string
from hubapi.config import settings

# Mixed case keeps 16 chars at ~95 bits; codes travel in URLs so stay alphanumeric
ALPHABET = string.ascii_letters + string.digits
SLUG_ALPHABET = string.ascii_lowercase + string.digits

def generate_code(length: int | None = None) -> str:
    n = length or settings.invitation_code_length
    return "".join(secrets.choice(ALPHABET) for _ in range(n))

def generate_slug(length: int = 8) -> str:
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))
