import pytest

from querycatalog.web.models.user import User


class TestLogin:
    @pytest.fixture(autouse=True)
    def setup_method(self, client, db_session, users):
        self.client = client
        self.db_session = db_session
        self.users = users

        # Simulate a handshake in progress
        with self.client.session_transaction() as flask_sess:
            flask_sess["request_token"] = ["request key", "request secret"]
            flask_sess["return_to_url"] = "return/to/url"

    def test_login(self, mocker):
        mocker.patch(
            "mwoauth.Handshaker.initiate", return_value=("loginredir", ["key", "secret"])
        )
        response = self.client.get("/login?next=/query/5")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("loginredir")
        with self.client.session_transaction() as flask_sess:
            assert list(flask_sess["request_token"]) == ["key", "secret"]
            assert flask_sess["return_to_url"] == "/query/5"

    def test_oauth_callback_registers_new_user(self, mocker):
        mocker.patch("mwoauth.Handshaker.complete", return_value=("fake_token"))
        mocker.patch(
            "mwoauth.Handshaker.identify",
            return_value=({"sub": 4242, "username": "a username"}),
        )

        response = self.client.get("/oauth-callback?woopity=bloopity")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("return/to/url")
        user = self.db_session.query(User).filter(User.wiki_uid == 4242).one()
        assert user.username == "a username"
        assert user.stars == 0
        with self.client.session_transaction() as flask_sess:
            assert flask_sess["user_id"] == user.id
            assert "request_token" not in flask_sess

    def test_oauth_callback_known_user(self, mocker):
        mocker.patch("mwoauth.Handshaker.complete", return_value=("fake_token"))
        mocker.patch(
            "mwoauth.Handshaker.identify",
            return_value=({"sub": 101, "username": "Alice"}),
        )

        self.client.get("/oauth-callback?woopity=bloopity")

        assert self.db_session.query(User).count() == 3
        with self.client.session_transaction() as flask_sess:
            assert flask_sess["user_id"] == self.users["alice"]

    def test_logout(self):
        response = self.client.get("/logout")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/")
        with self.client.session_transaction() as flask_sess:
            assert "return_to_url" not in flask_sess
