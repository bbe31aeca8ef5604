import argparse
import logging
import os
import sys

from playwright.sync_api import sync_playwright
from plyer import notification

from browser_session import Session
from discover_courses import (fetch_courses, gather_video_statistics,
                              overview_all_courses, persist_chosen_courses)
from lms_config import ConfigError, load_config, setup_logging
from plan_manager import PlanManager
from progress_store import ProgressStore, StoreError
from traversal import execute_plan

# Suppress Playwright/Node deprecation warnings
os.environ["NODE_OPTIONS"] = "--no-deprecation"

logger = logging.getLogger("lms_autoplay")


def notify(settings, message):
    if not settings.notify:
        return
    try:
        notification.notify(title="LMS Autoplay", message=message)
    except Exception as e:
        logger.debug("Desktop notification failed: %s", e)


def choose_plan_io(plans, read=input):
    """Returns (plan name, is_new)."""
    while True:
        if plans:
            print("Plans found:")
            for i, name in enumerate(plans, 1):
                print(f"  {i}: {name}")
            answer = read("Enter a number to open a plan, or 0 to create a new one: ").strip()
            if not answer.isdigit():
                print("Invalid input, please enter a number")
                continue
            choice = int(answer)
            if 1 <= choice <= len(plans):
                return plans[choice - 1], False
            if choice != 0:
                print("Number out of range, try again")
                continue

        name = read("Name of the new plan: ").strip()
        if name:
            return name, True
        print("Plan name can't be empty")


def choose_courses_io(courses, read=input):
    """Returns the ids of the courses the user picked by number."""
    for i, course in enumerate(courses, 1):
        print(f"{i}. {course.name} [{course.id}]")
    while True:
        answer = read("Numbers of the courses to include, separated by spaces (e.g. 1 3 11): ").strip()
        if not answer:
            return []
        try:
            picks = [int(token) for token in answer.split()]
        except ValueError:
            print("Only numbers please")
            continue
        if any(p < 1 or p > len(courses) for p in picks):
            print("Number out of range, try again")
            continue
        return [courses[p - 1].id for p in picks]


def build_plan(session, store, settings):
    """Discovery for a new plan: choose courses, list their videos, read progress."""
    courses = fetch_courses(session, settings)
    if not courses:
        print("❌ No courses found on the portal.")
        return {}
    chosen = persist_chosen_courses(store, courses, choose_courses_io(courses))
    overview_all_courses(session, store, settings)

    for course in chosen.values():
        if not store.has_videos(course.video_set_id):
            continue
        gather_video_statistics(session, course, store, settings)
    return store.load_courses()


def print_summary(reports):
    print("\n" + "=" * 60)
    print("📊 SUMMARY")
    print("=" * 60)
    for report in reports:
        if report.skipped:
            status = "⏩ already finished"
        elif report.error is not None:
            status = f"❌ aborted ({report.error})"
        elif report.completed:
            status = "✅ finished"
        else:
            status = "⚠️ unfinished"
        print(f"{report.course.name}: {status} "
              f"(played {len(report.finished)}, failed {len(report.failed)})")


def run(args):
    settings = load_config(args.config)
    if args.headless:
        settings.headless = True
    setup_logging(settings.log_level, settings.log_file)

    plans = PlanManager(settings.plans_dir)
    if args.list_plans:
        for name in plans.list_plans():
            print(name)
        return 0
    if args.delete_plan:
        return 0 if plans.delete_plan(args.delete_plan) else 1

    plan_name = args.plan or choose_plan_io(plans.list_plans())[0]
    # courses is None only while courses.json is missing
    plans.create_plan(plan_name)
    plan_dir, courses = plans.get_plan(plan_name)
    store = ProgressStore(plan_dir)

    with sync_playwright() as p:
        with Session(p, settings) as session:
            if courses is None:
                courses = build_plan(session, store, settings)
            else:
                print("This plan contains:")
                for course in courses.values():
                    print(f"- {course.name}")

            def on_course_done(report):
                if report.completed:
                    notify(settings, f"{report.course.name} finished")

            reports = execute_plan(session, courses, store, settings, on_course_done=on_course_done)

    print_summary(reports)
    notify(settings, "All planned courses processed")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Plays Moodle video lectures until the portal marks them complete")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--plan", help="Open (or create) this plan without prompting")
    parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    parser.add_argument("--list-plans", action="store_true", help="List plans and exit")
    parser.add_argument("--delete-plan", metavar="NAME", help="Delete a plan and exit")
    args = parser.parse_args(argv)

    try:
        return run(args)
    except KeyboardInterrupt:
        print("\n🛑 Process interrupted by user. Progress is saved, run again to resume.")
        return 130
    except (ConfigError, StoreError) as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
