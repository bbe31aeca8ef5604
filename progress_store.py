import json
import logging
import os
import tempfile

from models import Course, Video, safe_file_name

COURSES_FILE = "courses.json"
VIDEOS_SUFFIX = "_videos.json"


class StoreError(Exception):
    pass


class NotFoundError(StoreError):
    pass


class CorruptError(StoreError):
    pass


class ProgressStore:
    """
    JSON ledger for one plan directory.

    courses.json holds {course_id: Course}; every course gets its own
    <course name>_videos.json holding the ordered video list. Every write
    replaces the whole file, so readers see either the old or the new document.
    """

    def __init__(self, plan_dir, logger=None):
        self.plan_dir = str(plan_dir)
        self.logger = logger or logging.getLogger(__name__)
        self.courses_path = os.path.join(self.plan_dir, COURSES_FILE)

    def videos_path(self, video_set_id):
        return os.path.join(self.plan_dir, safe_file_name(video_set_id, 200) + VIDEOS_SUFFIX)

    # --- raw documents ---

    def _read(self, path):
        if not os.path.exists(path):
            raise NotFoundError(f"{path} does not exist")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (ValueError, UnicodeDecodeError) as e:
            raise CorruptError(f"{path} is not valid JSON: {e}") from e

    def _write(self, path, document):
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=self.plan_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # --- videos ---

    def has_videos(self, video_set_id):
        return os.path.exists(self.videos_path(video_set_id))

    def load_videos(self, video_set_id):
        path = self.videos_path(video_set_id)
        document = self._read(path)
        if not isinstance(document, list):
            raise CorruptError(f"{path} must hold a list of videos")
        try:
            return [Video.from_dict(item) for item in document]
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptError(f"{path} has a malformed video record: {e!r}") from e

    def save_videos(self, video_set_id, videos):
        path = self.videos_path(video_set_id)
        self._write(path, [v.to_dict() for v in videos])
        self.logger.debug("Saved %d videos to %s", len(videos), path)

    def update_video(self, video_set_id, video):
        """Replaces the stored entry with the same (name, url) identity."""
        videos = self.load_videos(video_set_id)
        if video not in videos:
            raise NotFoundError(f"video {video.name!r} is not part of {video_set_id!r}")
        self.save_videos(video_set_id, [video if v == video else v for v in videos])

    # --- courses ---

    def has_courses(self):
        return os.path.exists(self.courses_path)

    def load_courses(self):
        document = self._read(self.courses_path)
        if not isinstance(document, dict):
            raise CorruptError(f"{self.courses_path} must hold a mapping of courses")
        try:
            courses = [Course.from_dict(item) for item in document.values()]
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptError(f"{self.courses_path} has a malformed course record: {e!r}") from e
        return {c.id: c for c in courses}

    def save_courses(self, courses):
        self._write(self.courses_path, {c.id: c.to_dict() for c in courses.values()})
        self.logger.debug("Saved %d courses to %s", len(courses), self.courses_path)

    def save_course(self, course):
        courses = self.load_courses()
        courses[course.id] = course
        self.save_courses(courses)
