import io
import logging
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

import lms_autoplay
from lms_autoplay import choose_courses_io, choose_plan_io, main, print_summary
from models import Course
from progress_store import ProgressStore
from traversal import CourseReport


def answers(*lines):
    it = iter(lines)
    return lambda prompt="": next(it)


class TestInteractiveChoices(unittest.TestCase):

    def test_choose_existing_plan(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(choose_plan_io(["a", "b"], read=answers("x", "5", "2")), ("b", False))

    def test_create_plan_when_none_exist(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(choose_plan_io([], read=answers("", "term 1")), ("term 1", True))

    def test_zero_creates_new_plan(self):
        with redirect_stdout(io.StringIO()):
            self.assertEqual(choose_plan_io(["a"], read=answers("0", "new")), ("new", True))

    def test_choose_courses(self):
        courses = [Course(name=n, url=f"https://lms.example/course/view.php?id={i}") for i, n in enumerate("ABC")]
        with redirect_stdout(io.StringIO()):
            self.assertEqual(choose_courses_io(courses, read=answers("1 x", "9", "1 3")), ["0", "2"])
            self.assertEqual(choose_courses_io(courses, read=answers("")), [])


class TestCli(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp(prefix="lms_cli_")
        self.config = os.path.join(self.tmp, "config.yaml")
        with open(self.config, "w", encoding="utf-8") as f:
            f.write(f"data_dir: {self.tmp!r}\nnotify: false\n")
        self.handlers = list(logging.getLogger().handlers)

    def tearDown(self):
        root = logging.getLogger()
        for h in list(root.handlers):
            if h not in self.handlers:
                root.removeHandler(h)
                h.close()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_list_and_delete_plans(self):
        os.makedirs(os.path.join(self.tmp, "plans", "term"))
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["--config", self.config, "--list-plans"]), 0)
        self.assertIn("term", out.getvalue())

        self.assertEqual(main(["--config", self.config, "--delete-plan", "term"]), 0)
        self.assertEqual(main(["--config", self.config, "--delete-plan", "term"]), 1)

    def test_bad_config_exits_non_zero(self):
        with open(self.config, "w", encoding="utf-8") as f:
            f.write("poll_interval: [\n")
        with redirect_stdout(io.StringIO()):
            self.assertEqual(main(["--config", self.config, "--list-plans"]), 1)

    def _run_plan(self, name):
        with mock.patch.object(lms_autoplay, "sync_playwright"), \
                mock.patch.object(lms_autoplay, "Session"), \
                mock.patch.object(lms_autoplay, "build_plan") as build_plan, \
                mock.patch.object(lms_autoplay, "execute_plan", return_value=[]) as execute_plan, \
                redirect_stdout(io.StringIO()):
            code = main(["--config", self.config, "--plan", name])
        return code, build_plan, execute_plan

    def test_existing_plan_with_unsafe_name_is_resumed(self):
        plan_dir = os.path.join(self.tmp, "plans", "cs101")
        os.makedirs(plan_dir)
        course = Course(name="Optics", url="https://lms.example/course/view.php?id=3", current_playing=5)
        ProgressStore(plan_dir).save_courses({course.id: course})

        code, build_plan, execute_plan = self._run_plan("cs:101")

        self.assertEqual(code, 0)
        build_plan.assert_not_called()
        self.assertEqual(list(execute_plan.call_args[0][1]), ["3"])
        self.assertEqual(ProgressStore(plan_dir).load_courses()["3"].current_playing, 5)

    def test_corrupt_courses_file_is_not_rediscovered(self):
        plan_dir = os.path.join(self.tmp, "plans", "cs101")
        os.makedirs(plan_dir)
        courses_path = os.path.join(plan_dir, "courses.json")
        with open(courses_path, "w", encoding="utf-8") as f:
            f.write("{not json")

        code, build_plan, execute_plan = self._run_plan("cs101")

        self.assertEqual(code, 1)
        build_plan.assert_not_called()
        execute_plan.assert_not_called()
        with open(courses_path, encoding="utf-8") as f:
            self.assertEqual(f.read(), "{not json")

    def test_new_plan_runs_discovery(self):
        code, build_plan, _ = self._run_plan("fresh")
        self.assertEqual(code, 0)
        build_plan.assert_called_once()
        self.assertTrue(os.path.isdir(os.path.join(self.tmp, "plans", "fresh")))

    def test_notify_is_best_effort(self):
        class Broken:
            def notify(self, **kwargs):
                raise NotImplementedError("no backend")

        settings = lms_autoplay.load_config(self.config)
        settings.notify = True
        original = lms_autoplay.notification
        lms_autoplay.notification = Broken()
        try:
            lms_autoplay.notify(settings, "done")
        finally:
            lms_autoplay.notification = original

    def test_summary(self):
        course = Course(name="Optics", url="u?id=1", is_finished=True)
        out = io.StringIO()
        with redirect_stdout(out):
            print_summary([CourseReport(course), CourseReport(course, skipped=True),
                           CourseReport(course, error=RuntimeError("corrupt"))])
        text = out.getvalue()
        self.assertIn("finished", text)
        self.assertIn("aborted (corrupt)", text)


if __name__ == "__main__":
    unittest.main()
