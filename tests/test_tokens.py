"""Tests for tokens.py module."""

import base64
from unittest.mock import patch

import pytest
from kubernetes import client

from dockercfg_controller.exceptions import StoreError, TokenTimeoutError
from dockercfg_controller.models import (
    SERVICE_ACCOUNT_NAME_KEY,
    SERVICE_ACCOUNT_UID_KEY,
    ControllerOptions,
    SecretType,
)
from dockercfg_controller.tokens import create_token_secret, get_token, jittered


class TestGetToken:
    """Tests for reading the token out of a secret."""

    def test_decodes_token(self):
        """Test the base64 token is decoded."""
        secret = client.V1Secret(data={"token": base64.b64encode(b"abc").decode()})
        assert get_token(secret) == "abc"

    def test_unfilled_secret(self):
        """Test an unfilled secret has no token."""
        assert get_token(client.V1Secret(data=None)) == ""
        assert get_token(client.V1Secret(data={})) == ""
        assert get_token(client.V1Secret(data={"token": ""})) == ""


class TestJittered:
    """Tests for poll interval jitter."""

    def test_no_jitter(self):
        """Test a zero factor keeps the interval."""
        assert jittered(0.5, 0.0) == 0.5

    def test_jitter_bounds(self):
        """Test jitter adds at most factor * interval."""
        for _ in range(50):
            assert 0.02 <= jittered(0.02, 1.0) <= 0.04


class TestCreateTokenSecret:
    """Tests for token secret provisioning."""

    def test_returns_filled_token(self, fake_store, make_sa, options):
        """Test the filled token secret is returned."""
        service_account = fake_store.add_service_account(make_sa())
        fake_store.fill_token_after = 3

        token_secret = create_token_secret(fake_store, service_account, options)

        assert get_token(token_secret) == "token-value"
        assert token_secret.metadata.name.startswith("default-token-")
        assert fake_store.secret_gets[("ns", token_secret.metadata.name)] == 3

    def test_token_secret_is_annotated(self, fake_store, make_sa, options):
        """Test the token secret is bound to its service account."""
        service_account = fake_store.add_service_account(make_sa())

        token_secret = create_token_secret(fake_store, service_account, options)

        assert token_secret.type == SecretType.SERVICE_ACCOUNT_TOKEN.value
        assert token_secret.metadata.annotations == {
            SERVICE_ACCOUNT_NAME_KEY: "default",
            SERVICE_ACCOUNT_UID_KEY: "uid-ns-default",
        }

    def test_timeout_deletes_token_secret(self, fake_store, make_sa, options):
        """Test an unfilled token secret is removed and the timeout reported."""
        service_account = fake_store.add_service_account(make_sa())
        fake_store.fill_token_after = None

        with pytest.raises(TokenTimeoutError) as exc_info:
            create_token_secret(fake_store, service_account, options)

        assert fake_store.secrets == {}
        assert exc_info.value.name.startswith("default-token-")
        assert exc_info.value.name in str(exc_info.value)
        assert sum(1 for call, _ in fake_store.calls if call == "get_secret") == options.token_wait_attempts

    def test_timeout_tolerates_missing_token_secret(self, fake_store, make_sa, options):
        """Test a token secret deleted by someone else does not mask the timeout."""
        service_account = fake_store.add_service_account(make_sa())
        fake_store.fill_token_after = None
        real_get = fake_store.get_secret

        def get_then_vanish(namespace, name):
            secret = real_get(namespace, name)
            if fake_store.secret_gets[(namespace, name)] == options.token_wait_attempts:
                del fake_store.secrets[(namespace, name)]
            return secret

        with patch.object(fake_store, "get_secret", side_effect=get_then_vanish):
            with pytest.raises(TokenTimeoutError):
                create_token_secret(fake_store, service_account, options)

    def test_timeout_reports_failed_delete(self, fake_store, make_sa, options):
        """Test a failed cleanup is reported and the timeout still raised."""
        service_account = fake_store.add_service_account(make_sa())
        fake_store.fill_token_after = None
        errors = []

        with patch.object(fake_store, "delete_secret", side_effect=StoreError("forbidden", status=403)):
            with pytest.raises(TokenTimeoutError):
                create_token_secret(fake_store, service_account, options, errors.append)

        assert len(errors) == 1
        assert errors[0].status == 403

    def test_fetch_error_aborts(self, fake_store, make_sa, options):
        """Test a failing poll is raised immediately."""
        service_account = fake_store.add_service_account(make_sa())

        with patch.object(fake_store, "get_secret", side_effect=StoreError("boom", status=500)) as mock_get:
            with pytest.raises(StoreError):
                create_token_secret(fake_store, service_account, options)

        mock_get.assert_called_once()

    def test_sleeps_between_polls(self, fake_store, make_sa):
        """Test the poll sleeps the configured interval between attempts only."""
        service_account = fake_store.add_service_account(make_sa())
        fake_store.fill_token_after = None
        options = ControllerOptions(token_wait_interval=0.25, token_wait_attempts=4, jitter_factor=0.0)

        with patch("dockercfg_controller.tokens.time.sleep") as mock_sleep:
            with pytest.raises(TokenTimeoutError):
                create_token_secret(fake_store, service_account, options)

        assert mock_sleep.call_count == 3
        mock_sleep.assert_called_with(0.25)
