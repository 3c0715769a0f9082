from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from memberwarden.datatypes.discord_datatypes import GuildID, RoleID
from memberwarden.errors import MalformedIdentifier
from memberwarden.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/memberwarden.db"
DEFAULT_ACKNOWLEDGEMENT_EMOJI = "✅"
DEFAULT_RELEASE_NOTICE = (
    "Your temp-ban has expired. Please re-read the rules and click the reaction "
    "to receive your perms, or message one of the admins if there is an issue."
)
DEFAULT_SUSPENSION_NOTICE = (
    "You have been temporarily removed from the server. Your ban will expire at "
    "**{release_at}**, at which time you will receive more information. "
    "Please contact an admin with questions."
)
DEFAULT_RULES_POSTED = "Rules posted."


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    Caches the contents of ``./config/app_config.yml`` and exposes typed
    shortcuts for the guild, member role, acknowledgement emoji, database
    location, and the user-facing notice texts.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if data is None:
                    return {}
                if not isinstance(data, dict):
                    logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _messages(self) -> Dict[str, Any]:
        messages = self._data.get("messages", {})
        return messages if isinstance(messages, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns an empty dict when the file is missing or unreadable.
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def guild_id(self) -> GuildID | None:
        """The guild the bot moderates, or None when unset or invalid."""
        value = self._data.get("guild_id")
        if value is None:
            return None
        try:
            return GuildID(value)
        except MalformedIdentifier as exc:
            logger.error("[APP CONFIGURATION] Invalid guild_id: %s", exc)
            return None

    @property
    def member_role_id(self) -> RoleID | None:
        """The role granted to users who acknowledge the rules."""
        value = self._data.get("member_role_id")
        if value is None:
            return None
        try:
            return RoleID(value)
        except MalformedIdentifier as exc:
            logger.error("[APP CONFIGURATION] Invalid member_role_id: %s", exc)
            return None

    @property
    def acknowledgement_emoji(self) -> str:
        value = self._data.get("acknowledgement_emoji") or DEFAULT_ACKNOWLEDGEMENT_EMOJI
        return str(value)

    @property
    def database_path(self) -> Path:
        """Location of the SQLite record store, resolved against the working directory."""
        value = self._data.get("database_path") or DEFAULT_DATABASE_PATH
        return Path(str(value)).resolve()

    @property
    def release_notice(self) -> str:
        """Direct message sent to a user when their suspension ends."""
        return str(self._messages().get("release_notice") or DEFAULT_RELEASE_NOTICE)

    @property
    def suspension_notice_template(self) -> str:
        """Direct message template sent on suspension; ``{release_at}`` is filled in."""
        return str(self._messages().get("suspension_notice") or DEFAULT_SUSPENSION_NOTICE)

    @property
    def rules_posted_reply(self) -> str:
        return str(self._messages().get("rules_posted") or DEFAULT_RULES_POSTED)

    def format_suspension_notice(self, release_at: str) -> str:
        """Render the suspension notice, falling back to the default on a bad template."""
        template = self.suspension_notice_template
        try:
            return template.format(release_at=release_at)
        except (KeyError, IndexError, ValueError) as exc:
            logger.warning("[APP CONFIGURATION] Bad suspension_notice template (%s); using default.", exc)
            return DEFAULT_SUSPENSION_NOTICE.format(release_at=release_at)


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
