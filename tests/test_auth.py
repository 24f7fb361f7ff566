"""Tests for admin credential checks, password rotation and attempt limiting."""

import pytest

from eventmap.core.errors import AuthenticationFailed, RateLimitExceeded, RequestValidationFailed
from eventmap.core.ratelimit import KeyedSlidingWindowLimiter
from eventmap.core.security import is_password_hash, verify_password
from eventmap.db.store import JsonDocumentStore, default_document
from eventmap.services.auth import AuthGate


@pytest.fixture()
def store(tmp_path):
    store = JsonDocumentStore(tmp_path / "db.json", defaults=default_document("password123"))
    store.load()
    return store


@pytest.fixture()
def gate(store):
    gate = AuthGate(store, username="admin", bcrypt_rounds=4)
    gate.ensure_password_hashed()
    return gate


def test_plaintext_default_is_upgraded_to_a_hash(store):
    assert store.read()["adminPassword"] == "password123"
    gate = AuthGate(store, username="admin", bcrypt_rounds=4)

    assert gate.ensure_password_hashed() is True
    stored = store.read()["adminPassword"]
    assert is_password_hash(stored)
    assert verify_password("password123", stored)

    # Already hashed, nothing to do the second time
    assert gate.ensure_password_hashed() is False
    assert store.read()["adminPassword"] == stored


def test_sign_in_accepts_correct_credentials(gate):
    gate.sign_in("admin", "password123")


@pytest.mark.parametrize(
    "username,password",
    [("admin", "wrong-password"), ("root", "password123"), ("Admin", "password123"), ("", "")],
)
def test_sign_in_rejects_any_wrong_factor_with_the_same_error(gate, username, password):
    with pytest.raises(AuthenticationFailed) as excinfo:
        gate.sign_in(username, password)
    assert excinfo.value.message == "Authentication failed."


def test_change_password_requires_both_fields(gate):
    with pytest.raises(RequestValidationFailed):
        gate.change_password("", "long-enough-password")
    with pytest.raises(RequestValidationFailed):
        gate.change_password("password123", "")


def test_change_password_rejects_short_passwords(gate):
    with pytest.raises(RequestValidationFailed, match="at least 8"):
        gate.change_password("password123", "short")
    gate.sign_in("admin", "password123")


def test_change_password_rejects_wrong_current_password(gate):
    with pytest.raises(AuthenticationFailed, match="Incorrect current password"):
        gate.change_password("not-it", "a-new-password")
    gate.sign_in("admin", "password123")


def test_change_password_invalidates_the_old_password(gate, store):
    gate.change_password("password123", "pumpkin-spice")

    gate.sign_in("admin", "pumpkin-spice")
    with pytest.raises(AuthenticationFailed):
        gate.sign_in("admin", "password123")
    assert verify_password("pumpkin-spice", store.read()["adminPassword"])


def test_limiter_blocks_the_eleventh_attempt_in_the_window():
    now = [0.0]
    limiter = KeyedSlidingWindowLimiter(10, 15 * 60, clock=lambda: now[0])

    for _ in range(10):
        limiter.hit("203.0.113.9")
        now[0] += 1

    with pytest.raises(RateLimitExceeded) as excinfo:
        limiter.hit("203.0.113.9")
    # The first attempt at t=0 frees its slot at t=900; we are at t=10
    assert excinfo.value.retry_after == 890

    # Other sources have their own budget
    limiter.hit("198.51.100.7")


def test_limiter_frees_slots_as_the_window_slides():
    now = [0.0]
    limiter = KeyedSlidingWindowLimiter(2, 60, clock=lambda: now[0])
    limiter.hit("a")
    limiter.hit("a")
    assert limiter.remaining("a") == 0

    now[0] = 60.0
    assert limiter.remaining("a") == 2
    limiter.hit("a")


def test_limiter_rejects_nonsense_configuration():
    with pytest.raises(ValueError):
        KeyedSlidingWindowLimiter(0, 60)
    with pytest.raises(ValueError):
        KeyedSlidingWindowLimiter(1, 0)


def test_limiter_forgets_sources_once_their_window_has_passed():
    now = [0.0]
    limiter = KeyedSlidingWindowLimiter(10, 900, clock=lambda: now[0])
    for n in range(1000):
        limiter.hit(f"10.0.{n // 256}.{n % 256}")
    assert limiter.tracked_keys() == 1000

    now[0] = 901.0
    limiter.hit("203.0.113.9")

    assert limiter.tracked_keys() == 1
    assert limiter.remaining("10.0.0.0") == 10
