"""Unit tests for auth/flows.py -- account lifecycle without HTTP.

Covers:
- registration: normalization, defaults, duplicate rejection, welcome mail
- login: same failure for unknown e-mail and wrong password; unverified may log in
- verification codes: single use, latest code wins, expiry, purpose separation
- password reset: unknown account, code consumption, new password takes effect
- mail delivery failures never change the outcome
- profile and password changes
"""

import time
from unittest.mock import MagicMock

import pytest

from auth import flows
from auth.outcomes import ErrorKind
from auth.tokens import decode_access_token, verify_password


@pytest.fixture
def mailer() -> MagicMock:
    return MagicMock()


def _register(user_store, mailer, settings, email="flow@x.com", password="secret1", name="Flow"):
    outcome = flows.register(user_store, mailer, settings, name=name, email=email, password=password)
    assert outcome.ok, outcome.message
    return outcome.value


class TestRegister:
    def test_creates_unverified_student(self, user_store, mailer, test_settings) -> None:
        user = _register(user_store, mailer, test_settings, email="  New@X.com ")
        assert user.email == "new@x.com"
        assert user.role == "student"
        assert user.is_verified is False
        assert verify_password("secret1", user.hashed_password)
        mailer.send.assert_called_once()
        assert mailer.send.call_args.args[0] == "new@x.com"

    def test_duplicate_email_is_conflict(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="dup@x.com")
        outcome = flows.register(user_store, mailer, test_settings, name="Other", email="DUP@x.com", password="secret2")
        assert outcome.error is ErrorKind.conflict
        assert user_store.count_users() == 1

    @pytest.mark.parametrize(
        "name,email,password",
        [("", "a@x.com", "secret1"), ("A", "", "secret1"), ("A", "a@x.com", ""), ("A", "a@x.com", "12345")],
    )
    def test_missing_or_short_fields(self, user_store, mailer, test_settings, name, email, password) -> None:
        outcome = flows.register(user_store, mailer, test_settings, name=name, email=email, password=password)
        assert outcome.error is ErrorKind.validation_error
        assert user_store.count_users() == 0

    def test_multibyte_password_over_72_bytes(self, user_store, mailer, test_settings) -> None:
        outcome = flows.register(
            user_store, mailer, test_settings, name="Ivan", email="ivan@x.com", password="\u0436" * 60
        )
        assert outcome.error is ErrorKind.validation_error
        assert "72 bytes" in outcome.message
        assert user_store.count_users() == 0

    def test_mail_failure_is_not_fatal(self, user_store, mailer, test_settings) -> None:
        mailer.send.side_effect = OSError("smtp down")
        user = _register(user_store, mailer, test_settings, email="nomail@x.com")
        assert user_store.get_by_id(user.id) is not None


class TestLogin:
    def test_success_issues_token(self, user_store, mailer, test_settings) -> None:
        user = _register(user_store, mailer, test_settings, email="login@x.com")
        outcome = flows.login(user_store, test_settings, email="LOGIN@x.com", password="secret1")
        assert outcome.ok
        payload = decode_access_token(outcome.value.token, test_settings)
        assert payload["user_id"] == user.id
        assert payload["role"] == "student"
        assert outcome.value.user.is_verified is False

    def test_unknown_and_wrong_password_look_the_same(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="same@x.com")
        wrong = flows.login(user_store, test_settings, email="same@x.com", password="nope123")
        unknown = flows.login(user_store, test_settings, email="ghost@x.com", password="secret1")
        assert wrong.error is unknown.error is ErrorKind.invalid_credentials
        assert wrong.message == unknown.message

    def test_missing_fields(self, user_store, test_settings) -> None:
        assert flows.login(user_store, test_settings, email="", password="x").error is ErrorKind.validation_error


class TestVerification:
    def test_correct_code_verifies_once(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="v@x.com")
        code = flows.send_verification_code(user_store, mailer, test_settings, email="v@x.com").value

        assert flows.verify_code(user_store, test_settings, email="V@x.com", code=code).ok
        assert user_store.get_by_email("v@x.com").is_verified is True
        again = flows.verify_code(user_store, test_settings, email="v@x.com", code=code)
        assert again.error is ErrorKind.invalid_or_expired_code

    def test_only_latest_code_is_valid(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="latest@x.com")
        first = flows.send_verification_code(user_store, mailer, test_settings, email="latest@x.com").value
        second = flows.send_verification_code(user_store, mailer, test_settings, email="latest@x.com").value
        if first != second:
            stale = flows.verify_code(user_store, test_settings, email="latest@x.com", code=first)
            assert stale.error is ErrorKind.invalid_or_expired_code
        assert flows.verify_code(user_store, test_settings, email="latest@x.com", code=second).ok

    def test_wrong_code_keeps_pending_code(self, user_store, mailer, test_settings) -> None:
        code = flows.send_verification_code(user_store, mailer, test_settings, email="w@x.com").value
        wrong = "000000" if code != "000000" else "111111"
        assert flows.verify_code(user_store, test_settings, email="w@x.com", code=wrong).error is (
            ErrorKind.invalid_or_expired_code
        )
        assert flows.verify_code(user_store, test_settings, email="w@x.com", code=code).ok

    def test_expired_code_rejected(self, user_store, mailer, test_settings) -> None:
        issued = time.time() - test_settings.otp_ttl_seconds - 1
        code = flows.send_verification_code(user_store, mailer, test_settings, email="exp@x.com", now=issued).value
        outcome = flows.verify_code(user_store, test_settings, email="exp@x.com", code=code)
        assert outcome.error is ErrorKind.invalid_or_expired_code
        assert outcome.message == "Invalid or expired OTP"

    def test_code_within_ttl_accepted(self, user_store, mailer, test_settings) -> None:
        issued = time.time()
        code = flows.send_verification_code(user_store, mailer, test_settings, email="ttl@x.com", now=issued).value
        later = issued + test_settings.otp_ttl_seconds - 1
        assert flows.verify_code(user_store, test_settings, email="ttl@x.com", code=code, now=later).ok

    def test_code_for_address_without_account(self, user_store, mailer, test_settings) -> None:
        code = flows.send_verification_code(user_store, mailer, test_settings, email="nobody@x.com").value
        assert flows.verify_code(user_store, test_settings, email="nobody@x.com", code=code).ok
        assert user_store.get_by_email("nobody@x.com") is None

    def test_mail_failure_still_issues_code(self, user_store, mailer, test_settings) -> None:
        mailer.send.side_effect = RuntimeError("boom")
        outcome = flows.send_verification_code(user_store, mailer, test_settings, email="m@x.com")
        assert outcome.ok
        assert len(user_store.list_codes("m@x.com", "verify")) == 1

    def test_reset_code_cannot_verify(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="cross@x.com")
        reset = flows.request_password_reset(user_store, mailer, test_settings, email="cross@x.com").value
        outcome = flows.verify_code(user_store, test_settings, email="cross@x.com", code=reset)
        assert outcome.error is ErrorKind.invalid_or_expired_code
        assert user_store.get_by_email("cross@x.com").is_verified is False


class TestPasswordReset:
    def test_unknown_account_is_not_found(self, user_store, mailer, test_settings) -> None:
        outcome = flows.request_password_reset(user_store, mailer, test_settings, email="ghost@x.com")
        assert outcome.error is ErrorKind.not_found
        mailer.send.assert_not_called()
        assert user_store.list_codes("ghost@x.com") == []

    def test_reset_changes_password_once(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="r@x.com")
        code = flows.request_password_reset(user_store, mailer, test_settings, email="r@x.com").value

        outcome = flows.reset_password(user_store, test_settings, email="r@x.com", code=code, new_password="fresh1")
        assert outcome.ok
        assert flows.login(user_store, test_settings, email="r@x.com", password="fresh1").ok
        assert not flows.login(user_store, test_settings, email="r@x.com", password="secret1").ok

        reuse = flows.reset_password(user_store, test_settings, email="r@x.com", code=code, new_password="other1")
        assert reuse.error is ErrorKind.invalid_or_expired_code

    def test_short_password_keeps_code(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="short@x.com")
        code = flows.request_password_reset(user_store, mailer, test_settings, email="short@x.com").value
        short = flows.reset_password(user_store, test_settings, email="short@x.com", code=code, new_password="123")
        assert short.error is ErrorKind.validation_error
        assert flows.reset_password(
            user_store, test_settings, email="short@x.com", code=code, new_password="longer1"
        ).ok

    def test_verify_code_cannot_reset(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="cross2@x.com")
        code = flows.send_verification_code(user_store, mailer, test_settings, email="cross2@x.com").value
        outcome = flows.reset_password(
            user_store, test_settings, email="cross2@x.com", code=code, new_password="hijack1"
        )
        assert outcome.error is ErrorKind.invalid_or_expired_code
        assert flows.login(user_store, test_settings, email="cross2@x.com", password="secret1").ok

    def test_expired_reset_code(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="old@x.com")
        issued = time.time() - test_settings.otp_ttl_seconds - 5
        code = flows.request_password_reset(user_store, mailer, test_settings, email="old@x.com", now=issued).value
        outcome = flows.reset_password(user_store, test_settings, email="old@x.com", code=code, new_password="fresh1")
        assert outcome.error is ErrorKind.invalid_or_expired_code


class TestSelfService:
    def test_update_profile(self, user_store, mailer, test_settings) -> None:
        user = _register(user_store, mailer, test_settings, email="p@x.com")
        outcome = flows.update_profile(user_store, user, name=" Renamed ", phone="555", program="python-development")
        assert outcome.ok
        assert outcome.value.name == "Renamed"
        assert outcome.value.phone == "555"
        assert outcome.value.program == "python-development"
        assert outcome.value.email == "p@x.com"

    def test_update_profile_rejects_blank_name(self, user_store, mailer, test_settings) -> None:
        user = _register(user_store, mailer, test_settings, email="blank@x.com")
        assert flows.update_profile(user_store, user, name="   ").error is ErrorKind.validation_error

    def test_change_password(self, user_store, mailer, test_settings) -> None:
        user = _register(user_store, mailer, test_settings, email="cp@x.com")
        wrong = flows.change_password(
            user_store, test_settings, user, current_password="bad-pass", new_password="next123"
        )
        assert wrong.error is ErrorKind.invalid_credentials
        assert flows.login(user_store, test_settings, email="cp@x.com", password="secret1").ok
        short = flows.change_password(user_store, test_settings, user, current_password="secret1", new_password="1")
        assert short.error is ErrorKind.validation_error

        assert flows.change_password(
            user_store, test_settings, user, current_password="secret1", new_password="next123"
        ).ok
        assert flows.login(user_store, test_settings, email="cp@x.com", password="next123").ok

    def test_change_password_over_72_bytes(self, user_store, mailer, test_settings) -> None:
        user = _register(user_store, mailer, test_settings, email="bytes@x.com")
        outcome = flows.change_password(
            user_store, test_settings, user, current_password="secret1", new_password="\u00e9" * 40
        )
        assert outcome.error is ErrorKind.validation_error
        assert flows.login(user_store, test_settings, email="bytes@x.com", password="secret1").ok

    def test_reset_password_over_72_bytes(self, user_store, mailer, test_settings) -> None:
        _register(user_store, mailer, test_settings, email="rbytes@x.com")
        code = flows.request_password_reset(user_store, mailer, test_settings, email="rbytes@x.com").value
        outcome = flows.reset_password(
            user_store, test_settings, email="rbytes@x.com", code=code, new_password="\u0436" * 50
        )
        assert outcome.error is ErrorKind.validation_error
