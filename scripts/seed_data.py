#!/usr/bin/env python3
"""
Seed script: creates users, items, follows and favorites via the API (no direct DB).
Ensures: PostgreSQL has data, Celery tasks are queued, Elasticsearch gets indexed when worker runs.
Run: API must be running. For ES indexing, run Celery worker as well.
  python scripts/seed_data.py
  python scripts/seed_data.py --users 100 --items-per-user 30
"""

import argparse
import random
import sys
import time
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

API_BASE = "http://localhost:8000/api/v1"

# Realistic titles/descriptions for search and UI (mixed EN/FA)
TITLES = [
    "لپ‌تاپ ایسوس", "MacBook Pro", "کیبورد مکانیکی", "ماوس بی‌سیم", "هدفون بلوتوث",
    "مانیتور ۲۷ اینچ", "وب‌کم HD", "اسپیکر بلوتوث", "شارژر موبایل", "کابل USB-C",
    "Laptop stand", "دستگاه تصفیه آب", "قهوه ساز", "چرخ خیاطی", "مخلوط کن",
    "کتاب برنامه‌نویسی پایتون", "کتاب طراحی وب", "دوره آنلاین React", "موسیک باکس",
    "ساعت هوشمند", "تبلت سامسونگ", "گوشی شیائومی", "پاوربانک", "هارد اکسترنال",
    "فلش ۶۴ گیگ", "کارت حافظه", "آداپتور چند پورت", "لایتینگ یواس بی", "پایه موبایل",
    "Coffee maker", "Electric kettle", "Toaster", "Blender", "Air fryer",
    "کوله پشتی", "کیف لپ‌تاپ", "قلم نوری", "تبلت گرافیکی", "میکروفون یواس بی",
    "Ring light", "Tripod", "Green screen", "Streaming mic", "Webcam 4K",
]

DESCRIPTIONS = [
    "مناسب برای کار و تحصیل. کیفیت عالی و گارانتی.",
    "سازگار با ویندوز و مک. طراحی سبک و مقاوم.",
    "برای توسعه‌دهندگان و علاقه‌مندان به تکنولوژی.",
    "ارگونومیک و راحت برای استفاده طولانی مدت.",
    "با باتری با دوام و شارژ سریع.",
    "مناسب برای استریم و کنفرانس آنلاین.",
    "Great for home office and remote work.",
    "High quality build and reliable performance.",
    "Popular choice for developers and designers.",
    "با گارانتی ۱۸ ماهه و پشتیبانی فارسی.",
]


TAGS = ["electronics", "home", "kitchen", "books", "audio", "office", "streaming", "mobile", "used", "new"]


def random_title() -> str:
    return random.choice(TITLES) + (" " + str(random.randint(1, 999)) if random.random() > 0.5 else "")


def random_description() -> str:
    return random.choice(DESCRIPTIONS)


def random_tags() -> list[str]:
    return random.sample(TAGS, k=random.randint(0, 3))


def post(client: httpx.Client, url: str, **kwargs) -> httpx.Response:
    """POST that waits out the signup/login rate limit instead of failing."""
    while True:
        r = client.post(url, **kwargs)
        if r.status_code != 429:
            return r
        time.sleep(int(r.headers.get("Retry-After", "1")))


def main():
    ap = argparse.ArgumentParser(description="Seed users, items, follows and favorites via API")
    ap.add_argument("--users", type=int, default=30, help="Number of users to create")
    ap.add_argument("--items-per-user", type=int, default=25, help="Items per user")
    ap.add_argument("--favorites-per-user", type=int, default=10, help="Favorites each user adds")
    ap.add_argument("--base-url", default=API_BASE, help="API base URL")
    args = ap.parse_args()

    sessions = []  # (username, auth headers)
    slugs = []
    created_items = 0
    errors = []

    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        # 1) Register (or log in existing) users
        print(f"Creating {args.users} users...")
        for i in range(args.users):
            username = f"user{i+1}"
            email = f"user{i+1}@example.com"
            password = "password123"
            try:
                r = post(client, "/users", json={"user": {"username": username, "email": email, "password": password}})
                if r.status_code == 422:
                    # Already exists - log in with same creds
                    r = post(client, "/users/login", json={"user": {"email": email, "password": password}})
                if r.status_code in (200, 201):
                    token = r.json()["user"]["token"]
                    sessions.append((username, {"Authorization": f"Bearer {token}"}))
                else:
                    errors.append(f"Register {email}: {r.status_code} {r.text[:80]}")
            except Exception as e:
                errors.append(f"Register {email}: {e}")
            if (i + 1) % 10 == 0:
                print(f"  ... {i+1} users")

        # 2) Items per user
        print(f"Creating ~{len(sessions) * args.items_per_user} items...")
        for n, (username, headers) in enumerate(sessions):
            for _ in range(args.items_per_user):
                try:
                    r = client.post(
                        "/items",
                        headers=headers,
                        json={"item": {
                            "title": random_title(),
                            "description": random_description(),
                            "body": random_description(),
                            "tagList": random_tags(),
                        }},
                    )
                    if r.status_code in (200, 201):
                        created_items += 1
                        slugs.append(r.json()["item"]["slug"])
                    else:
                        errors.append(f"Item {username}: {r.status_code}")
                except Exception as e:
                    errors.append(str(e))
            if len(sessions) <= 10 or n % 5 == 0:
                print(f"  User {username}: +{args.items_per_user} items (total items so far: {created_items})")

        # 3) Follows and favorites, so feeds and favoritesCount have data
        print("Adding follows and favorites...")
        usernames = [u for u, _ in sessions]
        for username, headers in sessions:
            others = [u for u in usernames if u != username]
            for target in random.sample(others, k=min(3, len(others))):
                r = client.post(f"/profiles/{target}/follow", headers=headers)
                if r.status_code != 200:
                    errors.append(f"Follow {username}->{target}: {r.status_code}")
            for slug in random.sample(slugs, k=min(args.favorites_per_user, len(slugs))):
                r = client.post(f"/items/{slug}/favorite", headers=headers)
                if r.status_code != 200:
                    errors.append(f"Favorite {username}->{slug}: {r.status_code}")

    print(f"\nDone. Users: {len(sessions)}, Items created: {created_items}")
    if errors:
        print(f"Errors ({len(errors)}):")
        for e in errors[:15]:
            print("  ", e)
        if len(errors) > 15:
            print("  ... and", len(errors) - 15, "more")
    print("\nTip: Run Celery worker to index items in Elasticsearch, then try GET /api/v1/search/items?q=...")


if __name__ == "__main__":
    main()
