import os
import shutil
import tempfile
import unittest

from playwright.sync_api import Error as PlaywrightError

from browser_session import KNOWN_BROWSERS, Session, detect_available_browsers
from fake_portal import LOGIN_URL, FakePlaywright, make_settings

TARGET = "https://lms.example/mod/video/view.php?id=7"


def nothing_detected():
    return set()


class TestLogin(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp(prefix="lms_session_")
        self.settings = make_settings(self.tmp)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def save_auth(self):
        with open(self.settings.auth_file, "w", encoding="utf-8") as f:
            f.write("{}")

    def test_reuses_saved_login(self):
        self.save_auth()
        pw = FakePlaywright()
        session = Session(pw, self.settings, detect=nothing_detected)

        context = pw.browser.contexts[0]
        self.assertEqual(context.storage_state_file, self.settings.auth_file)
        self.assertEqual(context.pages, [])

        page = session.new_page(TARGET)
        self.assertEqual(page.url, TARGET)
        self.assertEqual(page.waited, [])

    def test_first_run_waits_for_login_and_saves_it(self):
        pw = FakePlaywright(logged_in=False)
        with Session(pw, self.settings, detect=nothing_detected):
            context = pw.browser.contexts[0]
            login_page = context.pages[0]
            self.assertEqual(login_page.visits, [self.settings.home_url])
            self.assertEqual(login_page.waited, [(self.settings.login_marker, self.settings.login_timeout * 1000)])
            self.assertTrue(login_page.closed)
            self.assertEqual(context.saved, [self.settings.auth_file])
            self.assertTrue(os.path.exists(self.settings.auth_file))

    def test_expired_login_is_renewed_on_new_page(self):
        self.save_auth()
        pw = FakePlaywright(logged_in=False)
        session = Session(pw, self.settings, detect=nothing_detected)

        page = session.new_page(TARGET)

        self.assertEqual(page.visits, [TARGET, self.settings.home_url, TARGET])
        self.assertEqual(page.waited, [(self.settings.login_marker, self.settings.login_timeout * 1000)])
        self.assertEqual(pw.browser.contexts[0].saved, [self.settings.auth_file])
        with open(self.settings.auth_file, encoding="utf-8") as f:
            self.assertIn("cookies", f.read())
        self.assertEqual(page.url, TARGET)
        self.assertFalse(page.closed)

    def test_needs_login(self):
        self.save_auth()
        session = Session(FakePlaywright(), self.settings, detect=nothing_detected)
        page = session.new_page(TARGET)
        self.assertFalse(session.needs_login(page))
        page.url = LOGIN_URL
        self.assertTrue(session.needs_login(page))

    def test_navigation_error_closes_page(self):
        self.save_auth()
        pw = FakePlaywright()
        session = Session(pw, self.settings, detect=nothing_detected)
        context = pw.browser.contexts[0]
        context.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

        with self.assertRaises(PlaywrightError):
            session.new_page(TARGET)
        self.assertTrue(context.pages[-1].closed)

    def test_close(self):
        self.save_auth()
        pw = FakePlaywright()
        session = Session(pw, self.settings, detect=nothing_detected)
        context = pw.browser.contexts[0]

        session.close()
        session.close()
        self.assertTrue(context.closed)
        self.assertTrue(pw.browser.closed)


class TestLaunch(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp(prefix="lms_launch_")
        self.settings = make_settings(self.tmp)
        with open(self.settings.auth_file, "w", encoding="utf-8") as f:
            f.write("{}")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def launch(self, channel, installed):
        self.settings.browser_channel = channel
        pw = FakePlaywright()
        Session(pw, self.settings, detect=lambda: set(installed))
        return pw

    def test_installed_channel_is_used(self):
        pw = self.launch("chrome", {"chrome", "firefox"})
        self.assertEqual(pw.chromium.launches, [{"headless": False, "channel": "chrome"}])

    def test_missing_channel_falls_back_to_bundled_chromium(self):
        with self.assertLogs("browser_session", "WARNING"):
            pw = self.launch("chrome", {"msedge"})
        self.assertEqual(pw.chromium.launches, [{"headless": False}])

    def test_channel_kept_when_detection_finds_nothing(self):
        pw = self.launch("msedge", set())
        self.assertEqual(pw.chromium.launches, [{"headless": False, "channel": "msedge"}])

    def test_firefox(self):
        self.settings.headless = True
        pw = self.launch("firefox", {"firefox"})
        self.assertEqual(pw.firefox.launches, [{"headless": True}])
        self.assertEqual(pw.chromium.launches, [])

    def test_empty_channel_skips_detection(self):
        def detect():
            raise AssertionError("detection should not run")

        self.settings.browser_channel = ""
        pw = FakePlaywright()
        Session(pw, self.settings, detect=detect)
        self.assertEqual(pw.chromium.launches, [{"headless": False}])


class TestDetectBrowsers(unittest.TestCase):

    def test_windows(self):
        chrome_exe = KNOWN_BROWSERS["chrome"][1]
        self.assertEqual(detect_available_browsers("Windows", exists=lambda p: p == chrome_exe), {"chrome"})

    def test_macos(self):
        found = detect_available_browsers("Darwin", exists=lambda p: p.endswith(("Edge.app", "Firefox.app")))
        self.assertEqual(found, {"msedge", "firefox"})

    def test_linux_uses_bundled_chromium(self):
        def exists(path):
            raise AssertionError("no paths to check on linux")

        self.assertEqual(detect_available_browsers("Linux", exists=exists), set())


if __name__ == "__main__":
    unittest.main()
