from flask import current_app

from models import get_storage
from services.accounts import AccountService
from utils.media import get_media_host
from utils.security import get_token_issuer


def get_account_service() -> AccountService:
    """AccountService wired to the running application's collaborators."""
    return AccountService(
        storage=get_storage(),
        issuer=get_token_issuer(),
        media=get_media_host(),
        revoke_on_refresh_reuse=current_app.config["REVOKE_ON_REFRESH_REUSE"],
        revoke_sessions_on_password_change=current_app.config["REVOKE_SESSIONS_ON_PASSWORD_CHANGE"],
    )
