"""Application service container and FastAPI dependencies."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from tinytune.auth.gate import AuthGate
from tinytune.auth.refresher import TokenRefresher
from tinytune.auth.service import OAuthService
from tinytune.crypto import TokenEncryptor
from tinytune.playback.fetcher import PlaybackFetcher
from tinytune.sessions.store import SessionFactory, SessionStore
from tinytune.settings import AppSettings


@dataclass(frozen=True, slots=True)
class Services:
    """Long-lived collaborators shared by all requests.

    The auth gate must be a single instance per process: its in-flight
    refresh table is what collapses concurrent refreshes per account.
    """

    settings: AppSettings
    store: SessionStore
    gate: AuthGate
    fetcher: PlaybackFetcher
    oauth: OAuthService


def build_services(settings: AppSettings, session_factory: SessionFactory) -> Services:
    """Wire the store, refresher, gate, fetcher and OAuth service together."""
    store = SessionStore(session_factory, TokenEncryptor(settings.TOKEN_ENCRYPTION_KEY))
    gate = AuthGate(settings, store, TokenRefresher(settings, store))
    return Services(
        settings=settings,
        store=store,
        gate=gate,
        fetcher=PlaybackFetcher(settings, gate),
        oauth=OAuthService(settings, store),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the container built in the app lifespan."""
    services: Services = request.app.state.services
    return services


AppServices = Annotated[Services, Depends(get_services)]
