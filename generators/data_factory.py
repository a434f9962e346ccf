"""
LLM-powered sample data generator for the Feasibility Matcher.
STRATEGY: one batched request per category (needs, capacities, contacts).
Strong prompts + robust parsing; invalid items are skipped, never fatal.
"""

import os
import json
import logging
import re
import google.generativeai as genai
from typing import List, Tuple, Dict, Any, Type
from pydantic import ValidationError, BaseModel

from models import Contact, Resource

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-preview-09-2025"

_LIST_KEYS = ("needs", "capacities", "resources", "contacts", "items", "result")

# Shared field rules for both roles
_RESOURCE_RULES = """
STRICT SCHEMA RULES (Follow exactly to avoid validation errors):

1. REQUIRED FIELDS:
   - "id" (string, unique)
   - "type_id" (string, e.g. "tutoring", "plumbing", "van_transport")
   - "description" (short string)
   - "quantity" (number >= 0) and "unit" (e.g. "hr", "kg", "seat")
   - "offerer" (string agent id, e.g. "agent_07")

2. AVAILABILITY ("availability_window"):
   {{ "day_schedules": [ {{ "days": ["monday", "wednesday"],
                           "time_ranges": [ {{ "start_time": "09:00", "end_time": "12:00" }} ] }} ] }}
   - Day names lowercase English.
   - Times "HH:MM", start strictly before end, ranges within one schedule must not overlap.
   - "time_zone": an IANA name such as "Europe/Berlin".
   - "min_atomic_size": optional integer minutes (30-240).

3. LOCATION (choose ONE):
   - In person: "latitude" and "longitude" near {region} (both required together),
     "location_type": "In person", "search_radius_km" between 5 and 80.
   - Remote (about 1 in 5 items): "location_type": "Remote", "online_link": "https://...",
     no latitude/longitude.

4. SKILLS ("required_skills"): list of {{ "id": skill_id, "level": 1-5 }} using ONLY these ids:
   {skills}
   Use an empty list for about half the items.
"""


class DataGenerator:
    def __init__(self, api_key: str | None = None, model_name: str = DEFAULT_MODEL):
        self.api_key = api_key or os.environ.get("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY not found. Please set it in environment.")

        genai.configure(api_key=self.api_key)
        self.model = genai.GenerativeModel(model_name)
        self.total_cost = 0.0

    def _estimate_cost(self, prompt_tokens: int, response_tokens: int) -> float:
        return (prompt_tokens * 0.075 + response_tokens * 0.30) / 1_000_000

    def _robust_parse_json(self, raw_text: str) -> List[Any]:
        """
        Strips markdown fences and normalizes the payload to a list of dicts.
        Accepts a bare list, a wrapper object ({"needs": [...]}), or a single object.
        """
        if not raw_text:
            return []

        clean_text = re.sub(r"```json\s*|\s*```", "", raw_text).strip()

        try:
            data = json.loads(clean_text)
        except json.JSONDecodeError:
            # Salvage the outermost list if the model added prose around it
            match = re.search(r"(\[.*\])", clean_text, re.DOTALL)
            if not match:
                return []
            try:
                data = json.loads(match.group(1))
            except json.JSONDecodeError:
                return []

        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]
        if isinstance(data, dict):
            for key in _LIST_KEYS:
                if isinstance(data.get(key), list):
                    return [item for item in data[key] if isinstance(item, dict)]
            return [data]
        return []

    def _validate_items(self, raw_items: List[Dict], model_class: Type[BaseModel]) -> List[BaseModel]:
        valid = []
        for i, item in enumerate(raw_items):
            try:
                valid.append(model_class(**item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid {model_class.__name__} {i}: {e.error_count()} error(s)")
        return valid

    def _fetch_big_batch(self, prompt: str, model_class: Type[BaseModel]) -> Tuple[List[Any], float]:
        """One generation request -> validated models plus its estimated cost."""
        try:
            generation_config = genai.GenerationConfig(
                response_mime_type="application/json",
                max_output_tokens=16000,
                temperature=0.7
            )
            response = self.model.generate_content(prompt, generation_config=generation_config)
        except Exception as e:
            logger.error(f"Batch generation failed: {e}")
            return [], 0.0

        cost = 0.0
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            cost = self._estimate_cost(usage.prompt_token_count, usage.candidates_token_count)
        self.total_cost += cost

        items = self._validate_items(self._robust_parse_json(response.text), model_class)
        logger.info(f"Generated {len(items)} {model_class.__name__} item(s) (${cost:.4f})")
        return items, cost

    def generate_resources(self, role: str, count: int = 20, region: str = "Berlin",
                           skill_ids: List[str] | None = None) -> Tuple[List[Resource], float]:
        """
        role: "need" (demand) or "capacity" (offer).
        Ids are re-stamped as need_XXX / cap_XXX so the two sets never collide.
        """
        if role not in ("need", "capacity"):
            raise ValueError(f"role must be 'need' or 'capacity', got {role!r}")
        skills = json.dumps(skill_ids or ["math", "plumbing", "driving", "first_aid", "carpentry"])

        if role == "need":
            intro = f"Generate {count} community NEEDS (requests for help, goods or services) in and around {region}."
        else:
            intro = f"Generate {count} community CAPACITIES (offers of help, goods or services) in and around {region}."

        prompt = f"""
        {intro}
        OUTPUT FORMAT: A single valid JSON Array containing {count} objects.
        {_RESOURCE_RULES.format(region=region, skills=skills)}
        """

        logger.info(f"Requesting {count} {role} resources for {region}...")
        items, cost = self._fetch_big_batch(prompt, Resource)

        prefix = "need" if role == "need" else "cap"
        stamped = [item.model_copy(update={"id": f"{prefix}_{i:03d}"}) for i, item in enumerate(items)]
        return stamped, cost

    def generate_contacts(self, count: int = 10, skill_ids: List[str] | None = None) -> Tuple[List[Contact], float]:
        skills = json.dumps(skill_ids or ["math", "plumbing", "driving", "first_aid", "carpentry"])
        prompt = f"""
        Generate {count} people offering or seeking help.
        OUTPUT: JSON Array.
        RULES:
        - "id": STRING agent id "agent_00" .. "agent_{count - 1:02d}" (sequential).
        - "name": a realistic full name.
        - "skills": 0-4 objects {{ "id": skill_id, "level": 1-5 }} using ONLY these ids: {skills}
        """
        return self._fetch_big_batch(prompt, Contact)

    def generate_dataset(self, need_count: int = 10, capacity_count: int = 30, contact_count: int = 10,
                         region: str = "Berlin") -> Tuple[Dict[str, List], float]:
        """Needs, capacities and contacts in three requests."""
        logger.info("Generating dataset (3 API calls)...")
        needs, c1 = self.generate_resources("need", need_count, region)
        capacities, c2 = self.generate_resources("capacity", capacity_count, region)
        contacts, c3 = self.generate_contacts(contact_count)

        return {
            "needs": needs,
            "capacities": capacities,
            "contacts": contacts
        }, c1 + c2 + c3
