"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_insights.adapters.image_client import HttpxImageClient
from meal_insights.adapters.openai_meal_analyzer import OpenAIMealAnalyzer
from meal_insights.adapters.supabase_meal_repository import SupabaseMealRepository
from meal_insights.config import Settings
from meal_insights.services.analysis import MealAnalysisService
from meal_insights.services.cache import TTLCache
from meal_insights.services.nutrition import NutritionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    nutrition_service: NutritionService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    meal_repository = SupabaseMealRepository(
        supabase_client, table_name=resolved_settings.supabase_meals_table
    )
    analyzer = OpenAIMealAnalyzer.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        store=resolved_settings.openai_store,
    )
    image_client = HttpxImageClient.create(
        timeout_seconds=resolved_settings.image_download_timeout_seconds
    )
    nutrition_service = NutritionService(
        repository=meal_repository,
        analysis_service=MealAnalysisService(
            analyzer=analyzer,
            timeout_seconds=resolved_settings.analysis_timeout_seconds,
        ),
        meals_cache=TTLCache(ttl_seconds=resolved_settings.cache_ttl_seconds),
        stats_cache=TTLCache(ttl_seconds=resolved_settings.cache_ttl_seconds),
        image_client=image_client,
    )

    async def close_resources() -> None:
        await analyzer.close()
        await image_client.close()

    return AppContainer(
        settings=resolved_settings,
        nutrition_service=nutrition_service,
        close_resources=close_resources,
    )
