"""Per-answer statistics with demographic breakdowns for a prompt."""
import logging
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional
from .database import Database
from .schema import AnswerStat, DemographicData, PromptStats

logger = logging.getLogger(__name__)

DEFAULT_MIN_RESPONSES_PER_ANSWER = 2


def age_group(birth_year: int, current_year: int) -> str:
    age = current_year - birth_year
    if age < 18:
        return "Under 18"
    if age <= 24:
        return "18-24"
    if age <= 34:
        return "25-34"
    if age <= 44:
        return "35-44"
    if age <= 54:
        return "45-54"
    return "55+"


def tally_demographics(users: List[dict], current_year: int) -> DemographicData:
    gender, position, year = Counter(), Counter(), Counter()
    for user in users:
        if user.get("gender"):
            gender[user["gender"]] += 1
        if user.get("position"):
            position[user["position"]] += 1
        if user.get("year"):
            year[age_group(int(user["year"]), current_year)] += 1
    return DemographicData(gender=dict(gender), position=dict(position), year=dict(year))


def has_enough_data(answer_stats: Dict[str, AnswerStat], min_per_answer: int) -> bool:
    # every answer present must clear the threshold
    if not answer_stats:
        return False
    return all(stat.count >= min_per_answer for stat in answer_stats.values())


async def compute_prompt_stats(
    db: Database,
    prompt_id: str,
    min_per_answer: int = DEFAULT_MIN_RESPONSES_PER_ANSWER,
    current_year: Optional[int] = None,
) -> PromptStats:
    """Group a prompt's responses by answer and break each group down by demographics.

    Counts come from the responses themselves, so a respondent missing from
    the users collection still counts toward their answer but adds nothing
    to the demographic tallies.
    """
    if current_year is None:
        current_year = datetime.now().year

    responses = await db.user_responses.find({"promptId": prompt_id}).to_list(length=None)
    if not responses:
        return PromptStats()

    user_ids_by_answer: Dict[str, List[str]] = {}
    for response in responses:
        user_ids_by_answer.setdefault(response["selectedResponse"], []).append(response["userId"])

    all_user_ids = {uid for uids in user_ids_by_answer.values() for uid in uids}
    users = await db.users.find({"clerkId": {"$in": list(all_user_ids)}}).to_list(length=None)
    users_by_id = {user["clerkId"]: user for user in users}

    answer_stats = {}
    for answer, user_ids in user_ids_by_answer.items():
        group = [users_by_id[uid] for uid in user_ids if uid in users_by_id]
        answer_stats[answer] = AnswerStat(
            count=len(user_ids),
            demographics=tally_demographics(group, current_year),
        )

    logger.info(f"Computed stats for prompt {prompt_id}: {len(responses)} responses, {len(answer_stats)} answers")
    return PromptStats(
        response_count=len(responses),
        has_enough_data=has_enough_data(answer_stats, min_per_answer),
        answer_stats=answer_stats,
    )
