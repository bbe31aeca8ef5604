"""
Builds a plan's ledger from the portal: which courses the user is enrolled in,
which videos each course has, and how far each video has been watched.
"""
import logging
import os
from datetime import datetime

from models import Course, Video, parse_duration, safe_file_name
from progress_store import StoreError

logger = logging.getLogger(__name__)


def screenshot_page(page, settings, label="page"):
    """Best-effort screenshot for diagnosis."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join(settings.screenshot_dir, f"{safe_file_name(label)}_{stamp}.png")
    try:
        os.makedirs(settings.screenshot_dir, exist_ok=True)
        page.screenshot(path=path)
        return path
    except Exception as e:
        logger.warning("Failed to take screenshot: %s", e)
        return None


def fetch_courses(session, settings):
    """All enrolled courses from the 'my courses' dropdown on the home page."""
    page = session.new_page(settings.home_url)
    try:
        page.click(settings.selector("course_menu"))
        page.wait_for_selector(settings.selector("course_links"))
        links = page.query_selector_all(settings.selector("course_links"))
        courses = []
        for link in links:
            href = link.get_attribute("href") or ""
            if not href:
                continue
            courses.append(Course(name=(link.text_content() or "").strip(), url=href))
    finally:
        page.close()
    logger.info("Fetched %d courses from the portal", len(courses))
    return courses


def persist_chosen_courses(store, courses, chosen_ids):
    chosen = {c.id: c for c in courses if c.id in set(chosen_ids)}
    store.save_courses(chosen)
    logger.info("Course plan persisted to %s (%d courses)", store.courses_path, len(chosen))
    return chosen


def _open_course_index(page, settings):
    sidebar = page.query_selector(settings.selector("course_index"))
    if sidebar is None or not sidebar.is_visible():
        page.click(settings.selector("course_index_toggle"))
    page.wait_for_selector(settings.selector("course_index_links"))


def overview_course(session, course, store, settings):
    """
    Writes the course's video list. Only the sidebar index is read: links in
    the main area can be collapsed. Existing video lists are left alone.
    """
    if store.has_videos(course.video_set_id):
        logger.info("⏩ Videos of %s already listed, skip", course.name)
        return store.load_videos(course.video_set_id)

    page = session.new_page(course.url)
    try:
        _open_course_index(page, settings)
        suffix = settings.selector("video_suffix")
        videos = []
        for link in page.query_selector_all(settings.selector("course_index_links")):
            name = (link.text_content() or "").strip()
            if name.endswith(suffix):
                videos.append(Video(name=name, url=link.get_attribute("href") or ""))
    except Exception:
        logger.exception("Error while fetching videos for course %s", course.name)
        screenshot_page(page, settings, course.name)
        raise
    finally:
        page.close()

    store.save_videos(course.video_set_id, videos)
    logger.info("🗺️  %s: %d videos listed", course.name, len(videos))
    return videos


def overview_all_courses(session, store, settings):
    """Lists videos for every course of the plan. A broken course doesn't stop the others."""
    failed = []
    for course in store.load_courses().values():
        try:
            overview_course(session, course, store, settings)
        except StoreError:
            raise
        except Exception as e:
            logger.error("Could not list videos of %s: %s", course.name, e)
            failed.append(course)
    return failed


def gather_video(session, video, settings):
    """Reads duration, watched seconds and completion of one video page."""
    if video.watch_seconds is not None and video.total_seconds is not None:
        logger.info("Statistics of %s already known, skip", video.name)
        return video

    page = session.new_page(video.url)
    try:
        page.wait_for_selector(settings.selector("watched_seconds"))
        # the player shows 0:00 until metadata is loaded
        page.wait_for_function(
            "sel => { const el = document.querySelector(sel);"
            " return el && el.textContent && el.textContent !== '0:00'; }",
            arg=settings.selector("duration"),
        )
        duration_el = page.query_selector(settings.selector("duration"))
        watched_el = page.query_selector(settings.selector("watched_seconds"))
        completion_el = page.query_selector(settings.selector("completion"))

        total_text = duration_el.text_content() if duration_el else None
        watched_text = watched_el.text_content() if watched_el else None
        finished = (completion_el is not None and
                    (completion_el.text_content() or "").strip() == settings.selector("completion_done_text"))
    finally:
        page.close()

    total = parse_duration(total_text)
    if not total:
        raise ValueError(f"unable to parse total time {total_text!r}")
    try:
        watched = int((watched_text or "").strip())
    except ValueError:
        raise ValueError(f"unable to parse watch seconds {watched_text!r}") from None

    return video.with_progress(watch_seconds=watched, total_seconds=total, is_finished=finished)


def gather_video_statistics(session, course, store, settings):
    """
    Fills in duration and progress for every video of a course. A video that
    can't be read keeps its old record. One write at the end.
    """
    logger.info("Gathering video statistics for %s...", course.name)
    videos = store.load_videos(course.video_set_id)
    updated = []
    failures = 0
    for video in videos:
        try:
            updated.append(gather_video(session, video, settings))
        except Exception as e:
            logger.error("Failed to gather statistics of %s: %s", video.name, e)
            updated.append(video)
            failures += 1

    store.save_videos(course.video_set_id, updated)
    logger.info("%s: statistics gathered. success: %d fail: %d",
                course.name, len(videos) - failures, failures)
    return updated
