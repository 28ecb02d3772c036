"""
Auth flow wiring.

Builds a mounted-ready AuthFlowStateMachine backed by Supabase, the way the
API's service container wires server-side services.
"""

from typing import Optional

from shared.config import Settings, get_settings
from shared.database import get_supabase_anon_client
from shared.flow_storage import FlowStorage
from modules.auth.interfaces import IIdentityProvider
from modules.auth.provider import SupabaseIdentityProvider
from modules.auth.service import SessionController
from modules.otp.service import OtpVerificationProtocol
from modules.profiles.interfaces import IProfileStore
from modules.profiles.repository import SupabaseProfileStore
from modules.profiles.service import ProfileGateway
from modules.redirect.interfaces import FullPageNavigator, Navigator
from modules.redirect.service import RedirectGuard
from modules.session_sync.interfaces import ISessionSyncBridge
from modules.session_sync.service import SessionSyncBridge

from .models import AuthStep, RouteInfo
from .service import AuthFlowStateMachine


def build_auth_flow(
    navigator: Navigator,
    full_page_navigator: FullPageNavigator,
    route: Optional[RouteInfo] = None,
    initial_step: AuthStep = AuthStep.LOGIN,
    settings: Optional[Settings] = None,
    provider: Optional[IIdentityProvider] = None,
    store: Optional[IProfileStore] = None,
    sync_bridge: Optional[ISessionSyncBridge] = None,
    storage: Optional[FlowStorage] = None,
) -> AuthFlowStateMachine:
    """
    Create an auth flow with all collaborators wired.

    Any collaborator may be passed in; missing ones are built from settings
    (Supabase anon client, ``users`` table, HTTP session bridge).

    Args:
        navigator: Client-side navigation to a path
        full_page_navigator: Unconditional navigation used as the fallback
        route: Route embedding the flow (carries ``redirectTo``)
        initial_step: Step to show first
    """
    settings = settings or get_settings()

    if provider is None or store is None:
        client = get_supabase_anon_client()
        if provider is None:
            provider = SupabaseIdentityProvider(client)
        if store is None:
            store = SupabaseProfileStore(client, settings.profiles_table)

    storage = storage or FlowStorage(ttl_seconds=settings.flow_storage_ttl_seconds)
    sync_bridge = sync_bridge or SessionSyncBridge(settings=settings)

    profiles = ProfileGateway(store)
    controller = SessionController(
        provider,
        settings=settings,
        registration_lookup=profiles.email_registered,
    )
    otp = OtpVerificationProtocol(controller, storage, settings=settings)
    guard = RedirectGuard(sync_bridge, navigator, full_page_navigator, storage, settings=settings)

    return AuthFlowStateMachine(
        controller,
        profiles,
        otp,
        guard,
        sync_bridge,
        storage,
        route=route,
        initial_step=initial_step,
        settings=settings,
    )
