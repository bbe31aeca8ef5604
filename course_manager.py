import logging


class CourseManager:
    """
    Keeps the playback cursor of one course.

    The video list is re-read from the store on every call so edits made by
    other tools between two calls are always seen. The course record is written
    back after each cursor move.
    """

    def __init__(self, course, store, logger=None):
        self.course = course
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    @property
    def course_name(self):
        return self.course.name

    @property
    def video_set_id(self):
        return self.course.video_set_id

    @property
    def videos(self):
        return self.store.load_videos(self.video_set_id)

    def refresh_finish(self, videos=None):
        """Recomputes course completion from the videos, stores and returns it."""
        if videos is None:
            videos = self.videos
        finished = all(v.is_finished for v in videos)
        self.course = self.course.with_finished(finished)
        self.store.save_course(self.course)
        if finished:
            self.logger.info("%s: all %d videos finished", self.course_name, len(videos))
        return finished

    def next_video(self, exclude=()):
        """
        Returns the next unfinished video, or None when the course is done.

        Fast path scans from the cached cursor onwards; if the cache is stale
        (someone reset a video behind it) a full rescan from the start runs.
        Videos in `exclude` are passed over but keep the course unfinished.
        """
        videos = self.videos

        for idx in range(self.course.current_playing, len(videos)):
            video = videos[idx]
            if not video.is_finished and video not in exclude:
                return self._select(idx, video)

        for idx, video in enumerate(videos):
            if not video.is_finished and video not in exclude:
                self.logger.warning(
                    "%s: cursor at %d was stale, resuming %s (#%d)",
                    self.course_name, self.course.current_playing, video.name, idx,
                )
                return self._select(idx, video)

        # stays False while excluded videos are still unfinished
        self.refresh_finish(videos)
        return None

    def _select(self, idx, video):
        cursor = max(self.course.current_playing, idx)
        self.course = self.course.with_cursor(cursor).with_finished(False)
        self.store.save_course(self.course)
        self.logger.debug("%s: next video #%d %s", self.course_name, idx, video.name)
        return video
