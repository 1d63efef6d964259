"""
Demo Clinic Seed

Loads services and professionals from a JSON file so the in-memory store
can answer commands without PostgreSQL.

Usage:
    store = seeded_memory_store()
    # or with a custom file
    store = seeded_memory_store(Path("my_clinic.json"))
"""

import json
import logging
from pathlib import Path
from typing import Optional

from podiatry_scheduler.core.scheduling.types import ProfessionalSpec, ServiceSpec
from podiatry_scheduler.infra.memory_store import InMemoryAppointmentStore
from podiatry_scheduler.infra.sql_store import weekly_template_from_json

logger = logging.getLogger(__name__)

# Default path to seed data file
SEED_FILE_PATH = Path(__file__).parent / "seed_clinic.json"


def load_seed_data(seed_file: Optional[Path] = None) -> tuple[list[ServiceSpec], list[ProfessionalSpec]]:
    """Read services and professionals from a seed file.

    Professionals use the same work_schedule shape as the professionals table.

    Raises:
        FileNotFoundError: If the seed file doesn't exist
        json.JSONDecodeError: If the file is invalid JSON
    """
    path = seed_file or SEED_FILE_PATH
    with open(path) as f:
        data = json.load(f)

    services = [
        ServiceSpec(
            id=entry["id"],
            name=entry["name"],
            duration_minutes=int(entry["duration_minutes"]),
        )
        for entry in data.get("services", [])
    ]
    professionals = [
        ProfessionalSpec(
            id=entry["id"],
            name=entry["name"],
            location_id=entry["location_id"],
            is_manager=bool(entry.get("is_manager", False)),
            work_schedule=weekly_template_from_json(entry.get("work_schedule")),
        )
        for entry in data.get("professionals", [])
    ]

    logger.debug(
        f"Loaded {len(services)} services and {len(professionals)} professionals from {path}"
    )
    return services, professionals


def seeded_memory_store(seed_file: Optional[Path] = None) -> InMemoryAppointmentStore:
    """In-memory store populated from a seed file."""
    services, professionals = load_seed_data(seed_file)
    return InMemoryAppointmentStore(services=services, professionals=professionals)
