import logging
from dataclasses import dataclass, field

from course_manager import CourseManager
from progress_store import StoreError
from video_player import PlaybackError, VideoPlayer

logger = logging.getLogger(__name__)


@dataclass
class CourseReport:
    course: object
    finished: list = field(default_factory=list)
    failed: list = field(default_factory=list)  # distinct videos still unplayed at the end of the run
    skipped: bool = False
    error: Exception = None

    @property
    def completed(self):
        return self.error is None and self.course.is_finished


def execute_course(session, course, store, settings, player_factory=VideoPlayer, log=None):
    """
    Plays every unfinished video of one course, in order.

    A video that fails is logged and passed over; it is retried on the next
    pass until it has failed `max_attempts_per_video` times in this run.
    StoreError propagates: without a readable ledger the course can't continue.
    """
    log = log or logger
    report = CourseReport(course)
    manager = CourseManager(course, store, logger=log)
    attempts = {}
    gave_up = set()

    log.info("📘 %s: starting", course.name)
    video = manager.next_video(exclude=gave_up)
    while video is not None:
        attempts[video] = attempts.get(video, 0) + 1
        with player_factory(session, video, store, manager.video_set_id, settings) as player:
            try:
                played = player.play_until_finished()
                report.finished.append(played)
                if played in report.failed:
                    report.failed.remove(played)
                log.info("%s: finish playing", played.name)
            except PlaybackError as e:
                if video not in report.failed:
                    report.failed.append(video)
                log.error("Failed to keep playing %s (attempt %d), skipping... (%s)",
                          video.name, attempts[video], e.reason)
                if attempts[video] >= settings.max_attempts_per_video:
                    gave_up.add(video)
        video = manager.next_video(exclude=gave_up)

    report.course = manager.course
    if gave_up:
        log.warning("%s: gave up on %d video(s) for this run: %s",
                    course.name, len(gave_up), ", ".join(v.name for v in gave_up))
    return report


def execute_plan(session, courses, store, settings, player_factory=VideoPlayer,
                 on_course_done=None, log=None):
    """Runs execute_course for every unfinished course. Returns one report per course."""
    log = log or logger
    reports = []
    for course in courses.values():
        if course.is_finished:
            log.info("⏩ Skipping (already finished): %s", course.name)
            reports.append(CourseReport(course, skipped=True))
            continue

        try:
            report = execute_course(session, course, store, settings, player_factory, log)
        except StoreError as e:
            log.error("%s: progress files unusable, aborting this course: %s", course.name, e)
            reports.append(CourseReport(course, error=e))
            continue

        reports.append(report)
        if on_course_done is not None:
            on_course_done(report)
    return reports
