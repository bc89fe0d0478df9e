from __future__ import annotations

from designer_gallery.app import GalleryApp
from designer_gallery.gateway import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED
from designer_gallery.records import Session
from designer_gallery.session import INCORRECT_CREDENTIALS


def test_initial_state_is_unauthenticated(gallery: GalleryApp) -> None:
    assert gallery.session.authenticated is False


def test_check_initial_session_reflects_gateway(gallery: GalleryApp, fake_gateway) -> None:
    fake_gateway.session = Session("tok", None, expires_at=10**10)
    assert gallery.session.check_initial_session() is True
    assert gallery.session.authenticated is True


def test_check_initial_session_failure_is_silent(gallery: GalleryApp, fake_gateway) -> None:
    fake_gateway.fail_session = True
    assert gallery.session.check_initial_session() is False
    assert gallery.session.authenticated is False
    assert gallery.state.notifications == ()


def test_sign_in_success(gallery: GalleryApp) -> None:
    gallery.open_login()
    assert gallery.session.sign_in("a@b.com", "right") is True
    assert gallery.session.authenticated is True
    assert gallery.state.login_prompt_open is False
    assert gallery.visible_message("success") == "Logged in"


def test_sign_in_rejected_keeps_prompt_open(gallery: GalleryApp, clock) -> None:
    gallery.open_login()
    assert gallery.session.sign_in("a@b.com", "wrong") is False
    assert gallery.session.authenticated is False
    assert gallery.state.login_prompt_open is True
    message = gallery.visible_message("error")
    assert message == INCORRECT_CREDENTIALS

    clock.advance(3.0)
    assert gallery.visible_message("error") is None
    gallery.expire_notifications()
    assert gallery.state.notifications == ()


def test_sign_out_is_optimistic(gallery: GalleryApp, fake_gateway) -> None:
    gallery.session.sign_in("a@b.com", "right")
    fake_gateway.fail_sign_out = True

    gallery.session.sign_out()

    assert gallery.session.authenticated is False
    assert gallery.visible_message("success") == "Logged out"
    assert "sign_out" in fake_gateway.calls


def test_session_events_drive_state(gallery: GalleryApp, fake_gateway) -> None:
    gallery.session.start()
    fake_gateway.listeners.emit(SIGNED_IN, Session("tok", None, expires_at=10**10))
    assert gallery.session.authenticated is True
    fake_gateway.listeners.emit(TOKEN_REFRESHED, Session("tok2", None, expires_at=10**10))
    assert gallery.session.authenticated is True
    fake_gateway.listeners.emit(SIGNED_OUT, None)
    assert gallery.session.authenticated is False


def test_close_unregisters_listener(gallery: GalleryApp, fake_gateway) -> None:
    gallery.session.start()
    gallery.session.start()
    assert fake_gateway.listeners.count() == 1

    gallery.session.close()
    gallery.session.close()
    assert fake_gateway.listeners.count() == 0

    fake_gateway.listeners.emit(SIGNED_IN, Session("tok", None, expires_at=10**10))
    assert gallery.session.authenticated is False


def test_verify_token_matches_gateway_session(gallery: GalleryApp, fake_gateway) -> None:
    assert gallery.session.verify_token("tok") is False

    fake_gateway.session = Session("tok", None, expires_at=10**10)
    assert gallery.session.verify_token(None) is False
    assert gallery.session.authenticated is True
    assert gallery.session.verify_token("other") is False
    assert gallery.session.verify_token("tok") is True

    fake_gateway.session = None
    assert gallery.session.verify_token("tok") is False
    assert gallery.session.authenticated is False


def test_verify_token_survives_gateway_failure(gallery: GalleryApp, fake_gateway) -> None:
    fake_gateway.fail_session = True
    assert gallery.session.verify_token("tok") is False
