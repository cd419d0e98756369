"""
Demo Data
=========

Static sample data for demo mode. Nothing here is persisted; calendar
times are generated relative to the current time.
"""

from datetime import datetime, timedelta
from typing import Optional

from gather.services.habit_service import STARTER_HABITS
from gather.utils.helpers import utc_now

DEMO_USER_ID = "demo-user"

DEMO_EMAILS = [
    {
        "id": "demo-email-1",
        "subject": "Your car registration expires in 2 weeks",
        "from": "DMV Notifications",
        "snippet": "Your vehicle registration for plate ABC-1234 expires on...",
    },
    {
        "id": "demo-email-2",
        "subject": "Dentist appointment reminder",
        "from": "Smile Dental Care",
        "snippet": "This is a reminder that you have an appointment scheduled for...",
    },
    {
        "id": "demo-email-3",
        "subject": "Your prescription is ready for pickup",
        "from": "CVS Pharmacy",
        "snippet": "Your prescription for... is ready at the CVS located at...",
    },
    {
        "id": "demo-email-4",
        "subject": "Invoice #4521 - Payment due",
        "from": "Utility Company",
        "snippet": "Your monthly bill of $127.50 is due on...",
    },
]

DEMO_TASKS = [
    {
        "id": "demo-task-1",
        "title": "Renew car registration",
        "category": "urgent",
        "badge": "Due Friday",
        "steps": [
            {"id": "demo-step-1", "text": "Find your renewal notice or plate number", "done": True, "time": "2 min"},
            {"id": "demo-step-2", "text": "Renew online at your state DMV site", "done": False, "time": "10 min"},
            {"id": "demo-step-3", "text": "Save the confirmation email", "done": False, "time": "1 min"},
        ],
    },
    {
        "id": "demo-task-2",
        "title": "Pick up prescription",
        "category": "soon",
        "badge": "Tomorrow",
        "steps": [],
    },
    {
        "id": "demo-task-3",
        "title": "Waiting for landlord to fix the sink",
        "category": "waiting",
        "badge": None,
        "steps": [],
    },
]


def demo_calendar_events(now: Optional[datetime] = None) -> list[dict]:
    """Three events: 2pm and 4:30pm today, 10am tomorrow."""
    now = now or utc_now()
    today = now.replace(minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)

    return [
        {
            "id": "demo-cal-1",
            "title": "Team standup",
            "startTime": today.replace(hour=14).isoformat(),
            "location": "Zoom",
        },
        {
            "id": "demo-cal-2",
            "title": "Coffee with Alex",
            "startTime": today.replace(hour=16, minute=30).isoformat(),
            "location": "Blue Bottle Coffee",
        },
        {
            "id": "demo-cal-3",
            "title": "Quarterly planning",
            "startTime": tomorrow.replace(hour=10).isoformat(),
            "location": "Conference Room B",
        },
    ]


def demo_habits() -> list[dict]:
    return [
        {
            "id": f"demo-habit-{i + 1}",
            "name": h["name"],
            "category": h["category"].value,
            "link": h.get("link"),
            "sortOrder": i,
            "done": False,
            "streak": 0,
            "bestStreak": 0,
        }
        for i, h in enumerate(STARTER_HABITS)
    ]


def demo_snapshot(now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    return {
        "userId": DEMO_USER_ID,
        "habits": demo_habits(),
        "tasks": [
            {**t, "createdAt": (now - timedelta(days=i + 1)).isoformat()}
            for i, t in enumerate(DEMO_TASKS)
        ],
        "emails": DEMO_EMAILS,
        "calendarEvents": demo_calendar_events(now),
    }
