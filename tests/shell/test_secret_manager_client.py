"""Tests for the Secret Manager client.

The Google client is patched; no network access.
"""

import os
from unittest.mock import Mock, patch

from parkpal.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


CLIENT_CLASS = "parkpal.shell.secret_manager_client.secretmanager.SecretManagerServiceClient"


def make_client(project_id="parkpal-prod"):
    return SecretManagerClient(SecretManagerConfig(project_id=project_id))


class TestGetSecret:
    """Tests for SecretManagerClient.get_secret()."""

    @patch(CLIENT_CLASS)
    def test_fetches_latest_version(self, mock_client_class):
        mock_api = mock_client_class.return_value
        mock_api.access_secret_version.return_value.payload.data = b"token-value"

        assert make_client().get_secret("expo-token") == "token-value"
        mock_api.access_secret_version.assert_called_once_with(
            request={"name": "projects/parkpal-prod/secrets/expo-token/versions/latest"}
        )

    @patch(CLIENT_CLASS)
    def test_failure_returns_none(self, mock_client_class):
        mock_client_class.return_value.access_secret_version.side_effect = Exception("denied")

        assert make_client().get_secret("expo-token") is None

    def test_no_project_returns_none(self):
        assert make_client(project_id=None).get_secret("expo-token") is None


class TestResolve:
    """Tests for SecretManagerClient.resolve()."""

    def test_plain_value_unchanged(self):
        assert make_client().resolve("plain") == "plain"

    def test_secret_placeholder(self):
        client = make_client()
        client.get_secret = Mock(return_value="token-value")

        assert client.resolve("${secret:expo-token}") == "token-value"
        client.get_secret.assert_called_once_with("expo-token")

    def test_unresolved_secret_kept(self):
        client = make_client()
        client.get_secret = Mock(return_value=None)

        assert client.resolve("${secret:expo-token}") == "${secret:expo-token}"

    def test_env_placeholder(self):
        with patch.dict(os.environ, {"EXPO_TOKEN": "env-token"}):
            assert make_client().resolve("${EXPO_TOKEN}") == "env-token"
