"""In-memory stand-ins for the Playwright page/session, used by the test suite."""
import os
import tempfile

from lms_config import DEFAULT_SELECTORS, Settings
from models import Course, Video
from polling import Poller
from progress_store import ProgressStore

DONE = DEFAULT_SELECTORS["completion_done_text"]


class FakeElement:
    def __init__(self, text=None, attrs=None, visible=True):
        self.text = text
        self.attrs = attrs or {}
        self.visible = visible

    def text_content(self):
        return self.text

    def get_attribute(self, name):
        return self.attrs.get(name)

    def is_visible(self):
        return self.visible


class FakeLocator:
    def __init__(self, page):
        self.page = page

    def count(self):
        if isinstance(self.page.session_button, Exception):
            raise self.page.session_button
        return self.page.session_button

    def click(self):
        self.page.session_extensions += 1


class FakePage:
    """
    `texts` maps selector -> value. A value can be a plain string, None
    (element missing), an Exception (raised on read) or a list consumed one
    item per read, the last item sticking.
    """

    def __init__(self, url="", texts=None, elements=None, lists=None, play_ok=True,
                 session_button=0, screenshot_fails=False):
        self.url = url
        self.texts = dict(texts or {})
        self.elements = dict(elements or {})
        self.lists = dict(lists or {})
        self.play_ok = play_ok
        self.session_button = session_button
        self.screenshot_fails = screenshot_fails
        self.clicks = []
        self.screenshots = []
        self.session_extensions = 0
        self.closed = False

    def goto(self, url, **kwargs):
        self.url = url

    def wait_for_selector(self, selector, timeout=None):
        if selector == DEFAULT_SELECTORS["play_button"] and not self.play_ok:
            raise TimeoutError(f"waiting for {selector} timed out")

    def wait_for_function(self, expression, arg=None):
        return True

    def click(self, selector, timeout=None):
        self.clicks.append(selector)

    def _value(self, selector):
        value = self.texts.get(selector)
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, Exception):
            raise value
        return value

    def query_selector(self, selector):
        if selector in self.elements:
            return self.elements[selector]
        value = self._value(selector)
        return None if value is None else FakeElement(value)

    def query_selector_all(self, selector):
        return list(self.lists.get(selector, []))

    def get_by_role(self, role, name=None):
        return FakeLocator(self)

    def screenshot(self, path=None):
        if self.screenshot_fails:
            raise RuntimeError("screenshot not possible")
        self.screenshots.append(path)

    def close(self):
        self.closed = True


class FakeSession:
    """Hands out pages from a url -> FakePage factory and keeps every page it made."""

    def __init__(self, pages=None, default=None):
        self.pages = dict(pages or {})
        self.default = default or (lambda url: video_page(url))
        self.opened = []

    def new_page(self, url):
        factory = self.pages.get(url, self.default)
        if isinstance(factory, Exception):
            raise factory
        page = factory(url) if callable(factory) else factory
        page.url = url
        self.opened.append(page)
        return page


class FakeClock:
    """Clock whose sleep just advances time."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


# --- browser level: what browser_session.Session drives ---

LOGIN_URL = "https://lms.example/login/index.php"


class FakeBrowserPage:
    """Lands on LOGIN_URL while its context is logged out. Waiting for a selector stands for the manual login."""

    def __init__(self, context):
        self.context = context
        self.url = "about:blank"
        self.visits = []
        self.waited = []
        self.closed = False

    def goto(self, url, **kwargs):
        self.visits.append(url)
        if self.context.goto_error is not None:
            raise self.context.goto_error
        self.url = url if self.context.logged_in else LOGIN_URL

    def wait_for_selector(self, selector, timeout=None):
        self.waited.append((selector, timeout))
        self.context.logged_in = True

    def close(self):
        self.closed = True


class FakeBrowserContext:
    def __init__(self, storage_state=None, logged_in=True):
        self.storage_state_file = storage_state
        self.logged_in = logged_in
        self.goto_error = None
        self.pages = []
        self.saved = []
        self.closed = False

    def new_page(self):
        page = FakeBrowserPage(self)
        self.pages.append(page)
        return page

    def storage_state(self, path=None):
        with open(path, "w", encoding="utf-8") as f:
            f.write('{"cookies": [], "origins": []}')
        self.saved.append(path)

    def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, logged_in=True):
        self.logged_in = logged_in
        self.contexts = []
        self.closed = False

    def new_context(self, storage_state=None):
        context = FakeBrowserContext(storage_state, self.logged_in)
        self.contexts.append(context)
        return context

    def close(self):
        self.closed = True


class FakeBrowserType:
    def __init__(self, browser):
        self.browser = browser
        self.launches = []

    def launch(self, **kwargs):
        self.launches.append(kwargs)
        return self.browser


class FakePlaywright:
    """`logged_in=False` makes every new context start on the login page."""

    def __init__(self, logged_in=True):
        self.browser = FakeBrowser(logged_in)
        self.chromium = FakeBrowserType(self.browser)
        self.firefox = FakeBrowserType(self.browser)


def video_page(url="", completion=(None, DONE), percent="42.5%", seconds="120",
               duration="12:34", **kwargs):
    """A player page that reports completion on the given sequence of reads."""
    texts = {
        DEFAULT_SELECTORS["completion"]: list(completion) if not isinstance(completion, Exception) else completion,
        DEFAULT_SELECTORS["watched_percent"]: percent,
        DEFAULT_SELECTORS["watched_seconds"]: seconds,
        DEFAULT_SELECTORS["duration"]: duration,
    }
    return FakePage(url, texts=texts, **kwargs)


def make_settings(tmp_dir, **overrides):
    settings = Settings(
        data_dir=tmp_dir,
        auth_file=os.path.join(tmp_dir, "auth.json"),
        screenshot_dir=os.path.join(tmp_dir, "screenshots"),
        poll_interval=15,
        poll_timeout=600,
        notify=False,
    )
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def fast_poller(settings):
    clock = FakeClock()
    return Poller(settings.poll_interval, settings.poll_timeout, clock=clock, sleep=clock.sleep)


def make_plan(videos, course=None, tmp_dir=None):
    """Writes courses.json + the video list into a temp dir, returns (store, course)."""
    tmp_dir = tmp_dir or tempfile.mkdtemp(prefix="lms_plan_")
    course = course or Course(name="Signals & Systems", url="https://lms.example/course/view.php?id=42")
    store = ProgressStore(tmp_dir)
    store.save_courses({course.id: course})
    store.save_videos(course.video_set_id, videos)
    return store, course


def videos(*names, finished=()):
    return [Video(name=n, url=f"https://lms.example/mod/video/{i}", is_finished=n in finished)
            for i, n in enumerate(names)]
