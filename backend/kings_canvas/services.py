from __future__ import annotations

from dataclasses import dataclass

from .ai.client import OpenAICompletionClient
from .db.dynamodb.table import DynamoTable, get_main_table
from .observability.logging import get_logger
from .opportunities.generation import GenerationPolicy, OpportunityGenerator
from .opportunities.simulation import CompletionClient, DraftSimulator, SimulationClient, TemplateSimulation
from .repositories.intentions_repo import IntentionsRepository
from .repositories.opportunities_repo import OpportunitiesRepository
from .repositories.steps_repo import StepsRepository
from .settings import Settings


@dataclass
class Services:
    """Process-wide collaborators, built once in create_app."""

    steps: StepsRepository
    intentions: IntentionsRepository
    opportunities: OpportunitiesRepository
    generator: OpportunityGenerator


def build_simulation(settings: Settings, completion: CompletionClient | None = None) -> DraftSimulator:
    """The model-backed simulator, or the template library when no OpenAI key is set."""
    if completion is not None:
        return SimulationClient(completion)
    if not str(settings.openai_api_key or "").strip():
        get_logger("services").warning("opportunities_using_template_simulation")
        return TemplateSimulation()
    return SimulationClient(OpenAICompletionClient(settings=settings))


def build_services(
    settings: Settings,
    *,
    table: DynamoTable | None = None,
    completion: CompletionClient | None = None,
) -> Services:
    # The table is resolved lazily so the app can start without DDB_TABLE_NAME in dev.
    if table is None and settings.ddb_table_name:
        table = get_main_table()

    steps = StepsRepository(table)
    intentions = IntentionsRepository(table)
    opportunities = OpportunitiesRepository(table)
    generator = OpportunityGenerator(
        steps=steps,
        intentions=intentions,
        opportunities=opportunities,
        simulation=build_simulation(settings, completion),
        policy=GenerationPolicy.from_settings(settings),
    )
    return Services(steps=steps, intentions=intentions, opportunities=opportunities, generator=generator)
