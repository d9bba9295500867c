"""
Demo Data Seeder

Creates a national coordinator account, a small hierarchy, cells and
about twelve weeks of weekly reports. Attendance is skewed per region so
the trend panel shows growth, decline and stagnation side by side.

Run with: python -m scripts.seed_demo_data [--weeks N] [--seed N] [--admin-email EMAIL]
"""

import argparse
import logging
import random
import sys
from datetime import date, timedelta
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from mvcp.auth.models import PastorData, UserRole
from mvcp.db import init_db
from mvcp.db import hierarchy, reports, users
from mvcp.errors import ConflictError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

# Weekly attendance multiplier per region: >1 grows, <1 declines
REGION_DRIFT = {
    "Littoral": 1.04,
    "Atlantique sud": 1.03,
    "Ouémé": 0.95,
    "Borgou": 0.96,
    "Zou": 1.0,
    "Mono": 1.0,
}

CELLS_PER_DISTRICT = 3

_FIRST_NAMES = ["Koffi", "Afi", "Codjo", "Ablavi", "Sèna", "Rachidi", "Yao", "Mawuli", "Bio", "Fifamè"]


def _seed_hierarchy(rng: random.Random) -> list[dict]:
    """Create one group and two districts per demo region, with cells."""
    cells = []
    for region in REGION_DRIFT:
        group = hierarchy.add_group(region, f"Groupe {region}")
        for number in (1, 2):
            district = hierarchy.add_district(group["group_id"], f"District {region} {number}")
            for index in range(CELLS_PER_DISTRICT):
                cells.append(
                    hierarchy.add_cell(
                        {
                            "district_id": district["district_id"],
                            "cell_name": f"Cellule {region} {number}.{index + 1}",
                            "cell_category": rng.choice(["Hommes", "Femmes", "Jeunes", "Mixte"]),
                            "leader_name": rng.choice(_FIRST_NAMES),
                            "status": "Active",
                        }
                    )
                )
    return cells


def _seed_reports(rng: random.Random, cells: list[dict], weeks: int, today: date) -> int:
    count = 0
    for cell in cells:
        drift = REGION_DRIFT[cell["region"]]
        men, women, children = rng.randint(5, 12), rng.randint(6, 14), rng.randint(0, 8)
        registered = men + women + children
        base = registered * rng.uniform(0.55, 0.75)

        # Oldest week first so attendance drifts forward in time
        for age in range(weeks - 1, -1, -1):
            cell_date = today - timedelta(days=7 * age + 1)
            expected = base * drift ** (weeks - 1 - age)
            attendees = max(0, min(registered, round(expected + rng.uniform(-1, 1))))
            invited = [{"name": rng.choice(_FIRST_NAMES)} for _ in range(rng.randint(0, 2))]
            reports.submit_report(
                {
                    "cell_date": cell_date,
                    "district_id": cell["district_id"],
                    "cell_id": cell["cell_id"],
                    "cell_name": cell["cell_name"],
                    "cell_category": cell["cell_category"],
                    "leader_name": cell["leader_name"],
                    "registered_men": men,
                    "registered_women": women,
                    "registered_children": children,
                    "attendees": attendees,
                    "invited_people": invited,
                    "bible_study": rng.randint(0, attendees),
                    "miracle_hour": rng.randint(0, attendees),
                    "sunday_service_attendance": rng.randint(0, attendees),
                    "poignant_testimony": "Guérison reçue pendant la prière." if rng.random() < 0.05 else None,
                },
                submitted_at=f"{cell_date.isoformat()}T20:00:00+00:00",
            )
            count += 1
    return count


def main():
    parser = argparse.ArgumentParser(description="Seed the database with demo data")
    parser.add_argument("--weeks", type=int, default=12, help="Weeks of reports per cell")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    parser.add_argument("--admin-email", default="admin@mvcp-benin.org")
    parser.add_argument("--admin-password", default="admin123")
    args = parser.parse_args()

    init_db()
    rng = random.Random(args.seed)

    try:
        users.add_pastor(
            PastorData(
                email=args.admin_email,
                name="Coordinateur National",
                role=UserRole.NATIONAL_COORDINATOR,
                password=args.admin_password,
            )
        )
        logger.info(f"Created national coordinator {args.admin_email}")
    except ConflictError:
        logger.info(f"Account {args.admin_email} already exists, skipping")

    try:
        cells = _seed_hierarchy(rng)
    except ConflictError as e:
        logger.error(f"Demo hierarchy already present: {e}")
        return 1
    logger.info(f"Created {len(cells)} cells")

    created = _seed_reports(rng, cells, args.weeks, date.today())
    logger.info(f"Created {created} reports over {args.weeks} weeks")
    return 0


if __name__ == "__main__":
    sys.exit(main())
