import re
from dataclasses import dataclass, field, replace


def course_id_from_url(url):
    """Moodle course links look like .../course/view.php?id=1234."""
    if "id=" in url:
        return url.split("id=", 1)[1]
    return url


def safe_file_name(name, max_len=120):
    """Strips characters Windows/macOS refuse in file names."""
    sanitized = re.sub(r'[\\/*?:"<>|]', "", name).strip()
    return sanitized[:max_len].strip(". ")


def parse_duration(time_str):
    """Parses 'MM:SS' or 'H:MM:SS' to seconds. Anything else is 0."""
    if not time_str:
        return 0
    try:
        parts = list(map(int, time_str.strip().split(":")))
    except ValueError:
        return 0
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    return 0


@dataclass(frozen=True)
class Course:
    name: str = field(compare=False)
    url: str = field(compare=False)
    id: str = ""
    is_finished: bool = field(default=False, compare=False)
    current_playing: int = field(default=0, compare=False)

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", course_id_from_url(self.url))

    @property
    def video_set_id(self):
        return self.name

    def with_cursor(self, index):
        return replace(self, current_playing=index)

    def with_finished(self, finished):
        return replace(self, is_finished=finished)

    def to_dict(self):
        return {
            "name": self.name,
            "url": self.url,
            "id": self.id,
            "isFinished": self.is_finished,
            "currentPlaying": self.current_playing,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data["name"],
            url=data["url"],
            id=data.get("id", ""),
            is_finished=bool(data.get("isFinished", False)),
            current_playing=int(data.get("currentPlaying", 0)),
        )


@dataclass(frozen=True)
class Video:
    name: str
    url: str
    watch_seconds: int = field(default=None, compare=False)
    total_seconds: int = field(default=None, compare=False)
    is_finished: bool = field(default=False, compare=False)

    def with_progress(self, watch_seconds=None, total_seconds=None, is_finished=None):
        """Copy with new progress. isFinished never goes back to False."""
        return replace(
            self,
            watch_seconds=self.watch_seconds if watch_seconds is None else watch_seconds,
            total_seconds=self.total_seconds if total_seconds is None else total_seconds,
            is_finished=self.is_finished or bool(is_finished),
        )

    def to_dict(self):
        return {
            "name": self.name,
            "url": self.url,
            "watchSeconds": self.watch_seconds,
            "totalSeconds": self.total_seconds,
            "isFinished": self.is_finished,
        }

    @classmethod
    def from_dict(cls, data):
        watch = data.get("watchSeconds")
        total = data.get("totalSeconds")
        return cls(
            name=data["name"],
            url=data["url"],
            watch_seconds=None if watch is None else int(watch),
            total_seconds=None if total is None else int(total),
            is_finished=bool(data.get("isFinished", False)),
        )
