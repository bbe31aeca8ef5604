import logging
import os
from dataclasses import dataclass, field, fields

import yaml

# --- CONFIGURATION ---
CONFIG_FILE = "config.yaml"

# Moodle + the portal's video plugin. Override any of these under `selectors:`.
DEFAULT_SELECTORS = {
    "play_button": "button.vjs-big-play-button",
    "watched_percent": ".num-bfjd > span",
    "watched_seconds": ".num-gksc > span",
    "duration": ".vjs-duration-display",
    "completion": ".tips-completion",
    "completion_done_text": "已完成",
    "session_extend_button": "延长会话",
    "course_menu": "li.mycourse",
    "course_links": "li.mycourse .dropdown-menu a[href*='/course/view.php']",
    "course_index": "#courseindex",
    "course_index_toggle": "button[title='打开课程索引']",
    "course_index_links": "#courseindex a.courseindex-link",
    "video_suffix": ".mp4",
}

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class ConfigError(Exception):
    pass


@dataclass
class Settings:
    home_url: str = "https://moodle.scnu.edu.cn/my/"
    login_marker: str = "li.mycourse"
    login_path: str = "/login/"
    login_timeout: float = 300
    browser_channel: str = "chrome"
    headless: bool = False
    data_dir: str = "data"
    auth_file: str = "data/auth.json"
    screenshot_dir: str = "data/screenshots"
    poll_interval: float = 15
    poll_timeout: float = 4 * 3600
    play_timeout: float = 30
    max_attempts_per_video: int = 2
    notify: bool = True
    log_level: str = "INFO"
    log_file: str = None
    selectors: dict = field(default_factory=lambda: dict(DEFAULT_SELECTORS))

    @property
    def plans_dir(self):
        return os.path.join(self.data_dir, "plans")

    def selector(self, key):
        return self.selectors.get(key, DEFAULT_SELECTORS[key])


# keys that may be set to null in config.yaml
NULLABLE = {"auth_file", "log_file", "poll_timeout", "browser_channel"}


def _coerce(key, value, kind):
    if value is None and key in NULLABLE:
        return None
    if kind is bool:
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be true or false, got {value!r}")
        return value
    if isinstance(value, (bool, dict, list)):
        raise ConfigError(f"{key} must be a {kind.__name__}, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a {kind.__name__}, got {value!r}") from e


def load_config(path=CONFIG_FILE):
    """Loads config.yaml on top of the defaults. A missing file means defaults."""
    settings = Settings()
    if not path or not os.path.exists(path):
        return settings

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(raw).__name__}")

    known = {f.name: f.type for f in fields(Settings)}
    for key, value in raw.items():
        if key not in known:
            logging.getLogger(__name__).warning("Ignoring unknown config key %r", key)
            continue
        if key == "selectors":
            if not isinstance(value, dict):
                raise ConfigError("selectors must be a mapping")
            settings.selectors.update(value)
        else:
            setattr(settings, key, _coerce(key, value, known[key]))

    if settings.poll_interval <= 0:
        raise ConfigError("poll_interval must be positive")
    if settings.max_attempts_per_video < 1:
        raise ConfigError("max_attempts_per_video must be at least 1")
    return settings


def dump_config(settings, path=CONFIG_FILE):
    data = {f.name: getattr(settings, f.name) for f in fields(Settings)}
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, sort_keys=False, allow_unicode=True)


def setup_logging(level="INFO", log_file=None):
    """Console logging plus an optional log file. Safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for handler in list(root.handlers):
        if getattr(handler, "_lms_autoplay", False):
            root.removeHandler(handler)
            handler.close()

    handlers = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._lms_autoplay = True
        root.addHandler(handler)

    # playwright's sync API runs an asyncio loop underneath
    logging.getLogger("asyncio").setLevel(logging.WARNING)
