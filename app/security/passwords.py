from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError


password_hash = PasswordHash.recommended()


def hash_password(raw_password: str) -> str:
    return password_hash.hash(raw_password)


def verify_password(raw_password: str, hashed_password: str) -> bool:
    # Directory rows imported from elsewhere may carry hashes we cannot read.
    try:
        return password_hash.verify(raw_password, hashed_password)
    except UnknownHashError:
        return False
