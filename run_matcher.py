"""
Main Execution Script for the Feasibility Matcher.
Loads (or generates) needs, capacities and contacts, indexes the capacities,
matches every need and exports the resulting MatchRecords.
"""

import os
import sys
import logging
import json
from typing import Dict, List, Optional, Tuple

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from generators.data_factory import DataGenerator
from models import Contact, MatcherConfig, Resource
from matcher import FeasibilityContext, MatchEngine, MatchRun

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("Main")

# --- CONFIGURATION ---
CACHE_FILENAME = os.environ.get("MATCHER_DATA_FILE", "sample_data.json")
EXPORT_FILENAME = os.environ.get("MATCHER_EXPORT_FILE", "match_records.json")
USE_CACHE = True  # Set to False to force new AI generation
API_KEY = os.environ.get("GOOGLE_API_KEY")
# ---------------------


def save_data(data: Dict[str, List], filename: str, trust: Optional[Dict] = None) -> None:
    """Cache generated data so we don't re-query the LLM every run."""
    serializable = {key: [item.model_dump(mode='json', exclude_none=True) for item in val] for key, val in data.items()}
    if trust:
        serializable["trust"] = trust
    with open(filename, 'w') as f:
        json.dump(serializable, f, indent=2)
    logger.info(f"Saved data to {filename}")


def load_cached_data(filename: str) -> Tuple[Optional[Dict[str, List]], Dict]:
    """Load the JSON cache and re-hydrate pydantic models."""
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning(f"Cache file {filename} not usable ({e}). Falling back to generator.")
        return None, {}

    loaded = {
        "needs": [Resource(**item) for item in data.get("needs", [])],
        "capacities": [Resource(**item) for item in data.get("capacities", [])],
        "contacts": [Contact(**item) for item in data.get("contacts", [])],
    }
    logger.info(
        f"Cache loaded: {len(loaded['needs'])} needs, "
        f"{len(loaded['capacities'])} capacities, {len(loaded['contacts'])} contacts."
    )
    return loaded, data.get("trust", {})


def make_context_factory(need: Resource, contacts: Dict[str, Contact], trust: Dict[str, Dict[str, float]]):
    """Per-capacity context: who is on each side, and their trust snapshots."""
    seeker = contacts.get(need.offerer) if need.offerer else None
    seeker_weights = trust.get(need.offerer) if need.offerer else None

    def context_for(capacity: Resource) -> FeasibilityContext:
        provider = contacts.get(capacity.offerer) if capacity.offerer else None
        return FeasibilityContext(
            provider=provider,
            seeker=seeker,
            provider_weights=trust.get(capacity.offerer) if capacity.offerer else None,
            seeker_weights=seeker_weights,
        )

    return context_for


def print_run(run: MatchRun) -> None:
    stats = run.get_statistics()
    print("\n" + "=" * 50)
    print(f"NEED {run.need.id}: {run.need.description or run.need.type_id or ''}")
    print("=" * 50)
    print(stats)

    for e in run.possible[:5]:
        print(f"  + {e.capacity.id}  confidence={e.confidence:.2f}")
        for risk in e.status.risk_factors or []:
            print(f"      risk: {risk}")

    for rejection in run.get_rejection_report()[:5]:
        print(f"  - {rejection['capacity_id']}  {', '.join(rejection['blocked_by'])}")
        print(f"      {'; '.join(rejection['reasons'])}")


def export_records(runs: List[MatchRun], filename: str) -> None:
    records = [record.model_dump(mode='json', exclude_none=True) for run in runs for record in run.to_records()]
    with open(filename, 'w') as f:
        json.dump(records, f, indent=2)
    logger.info(f"Exported {len(records)} match records to {filename}")


def main():
    if not API_KEY and not USE_CACHE:
        logger.error("GOOGLE_API_KEY not found. Please set it via 'export GOOGLE_API_KEY=...'")
        return

    logger.info("Starting Feasibility Matcher run...")
    data, trust = (load_cached_data(CACHE_FILENAME) if USE_CACHE else (None, {}))

    # --- PHASE 1: DATA ACQUISITION (Cache vs. GenAI) ---
    if not data:
        if not API_KEY:
            logger.error("No cached data and no GOOGLE_API_KEY. Exiting.")
            return

        generator = DataGenerator(api_key=API_KEY)
        data, cost = generator.generate_dataset()
        logger.info(f"Total Estimated LLM Cost: ${cost:.4f}")
        save_data(data, CACHE_FILENAME)

    if not data["needs"] or not data["capacities"]:
        logger.error("No needs or capacities available. Exiting.")
        return

    # --- PHASE 2: INDEX + MATCH ---
    config = MatcherConfig.from_env()
    engine = MatchEngine.from_config(data["capacities"], config)
    contacts = {c.id: c for c in data["contacts"]}

    runs = []
    for need in data["needs"]:
        run = engine.find_matches(need, context_for=make_context_factory(need, contacts, trust))
        runs.append(run)
        print_run(run)

    # --- PHASE 3: EXPORT ---
    export_records(runs, EXPORT_FILENAME)
    print("\nMatching run complete.")


if __name__ == "__main__":
    main()
