import logging
import os
import shutil

from models import safe_file_name
from progress_store import ProgressStore

logger = logging.getLogger(__name__)


class PlanManager:
    """A plan is a directory under `root` holding courses.json and the video lists."""

    def __init__(self, root="data/plans"):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def plan_dir(self, name):
        return os.path.join(self.root, safe_file_name(name))

    def create_plan(self, name):
        if not safe_file_name(name):
            raise ValueError("plan name can't be empty")
        path = self.plan_dir(name)
        os.makedirs(path, exist_ok=True)
        logger.info("Created plan: %s", path)
        return path

    def list_plans(self):
        return sorted(
            entry for entry in os.listdir(self.root)
            if os.path.isdir(os.path.join(self.root, entry))
        )

    def delete_plan(self, name):
        path = self.plan_dir(name)
        if not os.path.isdir(path):
            logger.warning("No such plan: %s", name)
            return False
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.error("Failed to delete plan %s: %s", name, e)
            return False
        logger.info("Deleted plan: %s", name)
        return True

    def get_plan(self, name):
        """
        Returns (plan_dir, courses). courses is None while the plan has no
        courses.json yet; a courses.json that can't be read raises StoreError.
        """
        path = self.plan_dir(name)
        store = ProgressStore(path)
        if not store.has_courses():
            logger.debug("Plan %s has no courses yet", name)
            return path, None
        courses = store.load_courses()
        logger.debug("Loaded plan: %s (%d courses)", name, len(courses))
        return path, courses
