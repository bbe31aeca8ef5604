import logging
import os
import platform

from playwright.sync_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

# channel -> (macOS path, Windows path)
KNOWN_BROWSERS = {
    "chrome": ("/Applications/Google Chrome.app",
               "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe"),
    "msedge": ("/Applications/Microsoft Edge.app",
               "C:\\Program Files (x86)\\Microsoft\\Edge\\Application\\msedge.exe"),
    "firefox": ("/Applications/Firefox.app",
                "C:\\Program Files\\Mozilla Firefox\\firefox.exe"),
}


def detect_available_browsers(system=None, exists=os.path.exists):
    """Installed browsers among KNOWN_BROWSERS. Empty on Linux: use playwright's bundled Chromium."""
    system = (system or platform.system()).lower()
    if system.startswith("win"):
        slot = 1
    elif system == "darwin" or system.startswith("mac"):
        slot = 0
    else:
        return set()
    found = {name for name, paths in KNOWN_BROWSERS.items() if exists(paths[slot])}
    logger.info("Browsers detected: %s", ", ".join(sorted(found)) or "none")
    return found


class Session:
    """
    One browser + one authenticated context shared by every page of a run.

    Login is manual: the first time, the portal's home page opens and we wait
    for the logged-in marker, then keep the storage state in `auth_file`.
    """

    def __init__(self, playwright, settings, detect=detect_available_browsers):
        self.settings = settings
        self.detect = detect
        self.browser = self._launch(playwright)
        self.context = None
        try:
            self.context = self._open_context()
        except BaseException:
            self.browser.close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _launch(self, playwright):
        channel = self.settings.browser_channel
        if channel in KNOWN_BROWSERS:
            installed = self.detect()
            # nothing detected means we can't tell (Linux, custom install paths)
            if installed and channel not in installed:
                logger.warning("%s is not installed, using playwright's bundled Chromium", channel)
                channel = ""
        if channel == "firefox":
            return playwright.firefox.launch(headless=self.settings.headless)
        options = {"headless": self.settings.headless}
        if channel:
            options["channel"] = channel
        return playwright.chromium.launch(**options)

    def _open_context(self):
        auth_file = self.settings.auth_file
        if auth_file and os.path.exists(auth_file):
            logger.info("🔑 Reusing saved login from %s", auth_file)
            return self.browser.new_context(storage_state=auth_file)

        context = self.browser.new_context()
        page = context.new_page()
        page.goto(self.settings.home_url)
        self._wait_for_login(context, page)
        page.close()
        return context

    def _wait_for_login(self, context, page):
        print("🔐 Please log in in the browser window...")
        page.wait_for_selector(self.settings.login_marker, timeout=self.settings.login_timeout * 1000)
        if self.settings.auth_file:
            os.makedirs(os.path.dirname(self.settings.auth_file) or ".", exist_ok=True)
            context.storage_state(path=self.settings.auth_file)
            logger.info("Login saved to %s", self.settings.auth_file)

    def needs_login(self, page):
        return self.settings.login_path in page.url

    def new_page(self, url):
        """Fresh page on `url`. Logs in again when the portal bounced us to its login page."""
        page = self.context.new_page()
        try:
            page.goto(url, wait_until="domcontentloaded")
            if self.needs_login(page):
                logger.warning("Session expired, waiting for a new login")
                page.goto(self.settings.home_url)
                self._wait_for_login(self.context, page)
                page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError:
            page.close()
            raise
        return page

    def close(self):
        if self.context is not None:
            self.context.close()
            self.context = None
        if self.browser is not None:
            self.browser.close()
            self.browser = None
