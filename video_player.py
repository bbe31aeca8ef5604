import logging
import os
from datetime import datetime
from enum import Enum

from models import parse_duration, safe_file_name
from outcomes import Degraded, Fatal, Ok
from polling import Poller, PollTimeout


class PlaybackError(Exception):
    def __init__(self, video, reason):
        super().__init__(f"{video.name}: {reason}")
        self.video = video
        self.reason = reason


class PlayerState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    POLLING = "polling"
    FINISHED = "finished"
    FAILED = "failed"


class VideoPlayer:
    """
    Plays one video on its own page until the portal marks it complete.

    play_until_finished() returns the updated Video or raises PlaybackError.
    Either way the last known progress is written to the store exactly once
    and the page is closed.
    """

    def __init__(self, session, video, store, video_set_id, settings,
                 poller=None, logger=None, now=datetime.now):
        self.session = session
        self.video = video
        self.store = store
        self.video_set_id = video_set_id
        self.settings = settings
        self.poller = poller or Poller(settings.poll_interval, settings.poll_timeout)
        self.logger = logger or logging.getLogger(__name__)
        self.now = now

        self.state = PlayerState.IDLE
        self.page = None
        self.watched_percent = 0.0
        self.screenshot_path = None
        self._persisted = False

    @property
    def video_name(self):
        return self.video.name

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --- lifecycle ---

    def play_until_finished(self):
        try:
            self.page = self._require(self._open_page(), "could not open video page")
            self._advisory(self._extend_session(), logging.DEBUG)
            self._require(self._click_play(), "play button not clickable")
            self.state = PlayerState.POLLING

            try:
                self.poller.run(self._poll_once)
            except PollTimeout as e:
                raise PlaybackError(self.video, f"not completed in time ({e})") from e

            self.state = PlayerState.FINISHED
            self.logger.info("%s: finished", self.video_name)
            return self.video
        except PlaybackError as e:
            self.state = PlayerState.FAILED
            self.logger.error("Playback failed: %s", e)
            self.take_screenshot()
            raise
        finally:
            try:
                self._persist()
            finally:
                self.close()

    def close(self):
        if self.page is None:
            return
        try:
            self.page.close()
            self.logger.debug("%s: page closed", self.video_name)
        except Exception as e:
            self.logger.debug("%s: page already gone (%s)", self.video_name, e)
        self.page = None

    def _poll_once(self):
        self._advisory(self._extend_session(), logging.DEBUG)

        percent = self._advisory(self._sample_percent())
        seconds = self._sample_seconds()
        self._advisory(seconds)
        total = None
        if self.video.total_seconds is None:
            total = self._advisory(self._sample_duration(), logging.DEBUG)

        finished = self._require(self._check_finished(), "completion indicator unreadable")

        self.watched_percent = percent
        self.video = self.video.with_progress(
            watch_seconds=seconds.value if isinstance(seconds, Ok) else None,
            total_seconds=total,
            is_finished=finished,
        )
        print(f"   └── ▶️ {self.video_name}: {percent:.1f}% watched")
        return finished

    def _persist(self):
        if self._persisted:
            return
        self._persisted = True
        self.store.update_video(self.video_set_id, self.video)
        self.logger.debug("%s persisted (finished=%s, watched=%ss)",
                          self.video_name, self.video.is_finished, self.video.watch_seconds)

    def take_screenshot(self):
        """Best effort; a missing screenshot never changes the outcome."""
        if self.page is None:
            return None
        stamp = self.now().strftime("%Y%m%d_%H%M%S")
        path = os.path.join(self.settings.screenshot_dir, f"{safe_file_name(self.video_name)}_{stamp}.png")
        try:
            os.makedirs(self.settings.screenshot_dir, exist_ok=True)
            self.page.screenshot(path=path)
        except Exception as e:
            self.logger.warning("%s: failed to take screenshot: %s", self.video_name, e)
            return None
        self.screenshot_path = path
        self.logger.info("%s: screenshot saved to %s", self.video_name, path)
        return path

    # --- outcome plumbing ---

    def _require(self, outcome, reason):
        if outcome.is_fatal:
            raise PlaybackError(self.video, f"{reason}: {outcome.error}") from outcome.error
        return outcome.value

    def _advisory(self, outcome, level=logging.WARNING):
        if isinstance(outcome, Degraded):
            self.logger.log(level, "%s: %s", self.video_name, outcome.warning)
        return outcome.value

    # --- page steps ---

    def _open_page(self):
        try:
            page = self.session.new_page(self.video.url)
        except Exception as e:
            return Fatal(e)
        self.state = PlayerState.PLAYING
        return Ok(page)

    def _click_play(self):
        selector = self.settings.selector("play_button")
        timeout_ms = self.settings.play_timeout * 1000
        try:
            self.page.wait_for_selector(selector, timeout=timeout_ms)
            self.page.click(selector, timeout=timeout_ms)
        except Exception as e:
            return Fatal(e)
        self.logger.info("%s: play button clicked", self.video_name)
        return Ok(True)

    def _extend_session(self):
        try:
            button = self.page.get_by_role("button", name=self.settings.selector("session_extend_button"))
            if button.count() == 0:
                return Ok(False)
            button.click()
        except Exception as e:
            return Degraded(False, f"session extension failed: {e}")
        self.logger.info("%s: session extended", self.video_name)
        return Ok(True)

    def _read_text(self, key):
        element = self.page.query_selector(self.settings.selector(key))
        if element is None:
            return None
        return element.text_content()

    def _sample_percent(self):
        try:
            text = self._read_text("watched_percent")
            if text is None:
                return Degraded(0.0, "no watched percent found, using 0")
            return Ok(float(text.strip().rstrip("%")))
        except Exception as e:
            return Degraded(0.0, f"unreadable watched percent ({e}), using 0")

    def _sample_seconds(self):
        try:
            text = self._read_text("watched_seconds")
            if text is None:
                return Degraded(0, "no watched seconds found, using 0")
            return Ok(int(text.strip()))
        except Exception as e:
            return Degraded(0, f"unreadable watched seconds ({e}), using 0")

    def _sample_duration(self):
        try:
            total = parse_duration(self._read_text("duration"))
        except Exception as e:
            return Degraded(None, f"unreadable duration ({e})")
        if total <= 0:
            return Degraded(None, "duration not loaded yet")
        return Ok(total)

    def _check_finished(self):
        try:
            text = self._read_text("completion")
        except Exception as e:
            return Fatal(e)
        finished = text is not None and text.strip() == self.settings.selector("completion_done_text")
        if finished:
            self.logger.info("%s: portal reports completion", self.video_name)
        return Ok(finished)
