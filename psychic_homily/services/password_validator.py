"""Password policy: length, common-password list and breach lookup.

The breach check uses the HaveIBeenPwned k-anonymity range API: only the
first five hex characters of the password's SHA-1 leave the process, and
the returned suffix list is compared locally.  If the API is unreachable
the password is accepted with a warning; an outage must not block signups.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

import httpx
import structlog

logger = structlog.get_logger(logger_name=__name__)

MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 128

_PWNED_RANGE_URL = "https://api.pwnedpasswords.com/range/{prefix}"
_TIMEOUT_SECONDS = 5.0

_COMMON_PASSWORDS = frozenset({
    "123456", "password", "123456789", "12345678", "12345", "1234567", "1234567890",
    "qwerty", "abc123", "111111", "123123", "admin", "letmein", "welcome",
    "monkey", "dragon", "master", "1234", "login", "sunshine", "princess",
    "qwertyuiop", "solo", "passw0rd", "starwars", "121212", "654321", "password1",
    "password123", "michael", "shadow", "superman", "qazwsx", "ashley", "bailey",
    "iloveyou", "trustno1", "000000", "football", "baseball", "qwerty123", "killer",
    "pepper", "joshua", "hunter", "cheese", "whatever", "martin", "ginger",
    "soccer", "batman", "andrew", "jordan", "matrix", "thomas", "123qwe",
    "summer", "internet", "service", "canada", "hello", "ranger", "harley",
    "passpass", "george", "banana", "computer", "corvette", "maggie", "merlin",
    "peanut", "cookie", "nicole", "guitar", "chicken", "buster", "golfer",
    "diamond", "michelle", "jennifer", "jessica", "hannah", "amanda", "chocolate",
    "jackson", "austin", "chelsea", "purple", "orange", "camaro", "maverick",
    "samantha", "charlie", "midnight", "justin", "dallas", "william", "brandon",
    "matthew", "anthony", "robert", "access", "yankees", "thunder",
    "taylor", "muffin", "jasmine", "creative", "coffee", "silver", "secret",
    "snoopy", "scooter", "donald", "yankee", "gators", "tigers", "steelers",
    "eagles", "cowboys", "packers", "redsox", "ravens", "broncos", "giants",
    "dolphins", "falcon", "spartan", "badger", "phoenix", "panther", "warrior",
    "password12", "password2", "password3", "pass123", "pass1234", "test123",
    "test1234", "testing", "testing123", "qwerty1", "qwerty12", "abc1234",
    "abcd1234", "aaaaaaaaaaaa", "111111111111", "123456789012", "1234567890123",
    "147258369", "123321", "789456123", "asdfgh", "asdfghjkl", "zxcvbnm",
    "1q2w3e4r", "1q2w3e4r5t", "1qaz2wsx", "qazwsxedc", "qwertyuiop123",
    "administrator", "admin123", "admin1234", "root", "toor",
    "changeme", "default", "letmein123", "welcome1", "welcome123",
    "p@ssw0rd", "p@ssword", "pa$$word", "pa$$w0rd", "passw0rd123",
    "password!", "password1!", "password1234", "iloveyou1234", "qwerasdfzxcv",
})


@dataclass
class PasswordValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def calculate_strength(password: str) -> int:
    """Score a password from 0 to 100 on length, variety and repetition."""
    length = len(password)
    if length == 0:
        return 0
    score = 0
    if length >= 12:
        score += 20
    if length >= 16:
        score += 10
    if length >= 20:
        score += 10

    score += 10 * sum((
        any(c.islower() for c in password),
        any(c.isupper() for c in password),
        any(c.isdigit() for c in password),
        any(not c.isalnum() for c in password),
    ))

    unique_ratio = len(set(password)) / length
    if unique_ratio > 0.5 and length >= 12:
        score += 10
    if unique_ratio > 0.7 and length >= 16:
        score += 10
    return min(score, 100)


def strength_label(score: int) -> str:
    if score < 30:
        return "Weak"
    if score < 50:
        return "Fair"
    if score < 70:
        return "Good"
    if score < 90:
        return "Strong"
    return "Excellent"


class PasswordValidator:
    """Checks a candidate password against the signup policy."""

    def __init__(
        self,
        *,
        breach_check_enabled: bool = True,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._breach_check_enabled = breach_check_enabled
        self._http_client = http_client

    @staticmethod
    def is_common_password(password: str) -> bool:
        return password.lower() in _COMMON_PASSWORDS

    async def is_breached(self, password: str) -> bool:
        """Query the range API.  Raises ``httpx.HTTPError`` when the lookup fails."""
        digest = hashlib.sha1(password.encode("utf-8")).hexdigest().upper()
        prefix, suffix = digest[:5], digest[5:]
        url = _PWNED_RANGE_URL.format(prefix=prefix)
        headers = {"User-Agent": "PsychicHomily-PasswordCheck", "Add-Padding": "true"}

        if self._http_client is not None:
            resp = await self._http_client.get(url, headers=headers, timeout=_TIMEOUT_SECONDS)
        else:
            async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
                resp = await client.get(url, headers=headers)
        resp.raise_for_status()

        for line in resp.text.splitlines():
            candidate, _, count = line.strip().partition(":")
            # Padding rows come back with a count of 0.
            if candidate.upper() == suffix and count.strip() != "0":
                return True
        return False

    async def validate(self, password: str) -> PasswordValidationResult:
        result = PasswordValidationResult()
        if len(password) < MIN_PASSWORD_LENGTH:
            result.errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(password) > MAX_PASSWORD_LENGTH:
            result.errors.append(f"Password must be no more than {MAX_PASSWORD_LENGTH} characters")
        if self.is_common_password(password):
            result.errors.append("This password is too common and easily guessed")

        if self._breach_check_enabled and password:
            try:
                if await self.is_breached(password):
                    result.errors.append(
                        "This password has been exposed in a data breach and should not be used"
                    )
            except httpx.HTTPError as exc:
                logger.warning("password_breach_check_failed", error=str(exc))
                result.warnings.append("Could not verify password against breach database")
        return result
