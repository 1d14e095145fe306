"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from meal_insights.config import Settings
from meal_insights.containers import AppContainer
from meal_insights.domain.meals import MealFilter, StoredMeal
from meal_insights.services.analysis import MealAnalysisService, MealAnalyzer
from meal_insights.services.cache import TTLCache
from meal_insights.services.nutrition import (
    ImageClient,
    MealRepository,
    NutritionService,
)
from meal_insights.services.stats import parse_timestamp

FIXED_NOW = datetime(2024, 5, 10, 13, 0, tzinfo=UTC)
IMAGE_BASE64 = "ZmFrZS1pbWFnZQ=="
IMAGE_BYTES = b"fake-image"


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal store for tests."""

    rows: dict[int, StoredMeal] = field(default_factory=dict)
    filters: list[MealFilter] = field(default_factory=list)
    next_id: int = 1

    def add(self, **fields: object) -> StoredMeal:
        return self.create_meal(dict(fields))

    def find_meals(self, meal_filter: MealFilter) -> list[StoredMeal]:
        self.filters.append(meal_filter)
        matched = []
        for row in self.rows.values():
            if row.get("user_id") != meal_filter.owner_id:
                continue
            created_at = parse_timestamp(row.get("created_at"))
            if meal_filter.created_from is not None and (
                created_at is None or created_at < meal_filter.created_from
            ):
                continue
            if meal_filter.created_to is not None and (
                created_at is None or created_at > meal_filter.created_to
            ):
                continue
            matched.append(dict(row))
        matched.sort(
            key=lambda row: parse_timestamp(row.get("created_at"))
            or datetime.min.replace(tzinfo=UTC),
            reverse=meal_filter.newest_first,
        )
        end = None
        if meal_filter.limit is not None:
            end = meal_filter.offset + meal_filter.limit
        return matched[meal_filter.offset : end]

    def create_meal(self, fields: dict[str, object]) -> StoredMeal:
        meal_id = self.next_id
        self.next_id += 1
        row = {**fields, "meal_id": meal_id}
        self.rows[meal_id] = row
        return dict(row)

    def update_meal(self, meal_id: int, fields: dict[str, object]) -> StoredMeal:
        row = {**self.rows[meal_id], **fields}
        self.rows[meal_id] = row
        return dict(row)

    def find_one_meal(self, meal_id: int, owner_id: str) -> StoredMeal | None:
        row = self.rows.get(meal_id)
        if row is None or row.get("user_id") != owner_id:
            return None
        return dict(row)


@dataclass
class FakeMealAnalyzer(MealAnalyzer):
    """Fake analyzer returning a fixed payload and recording calls."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "name": "Chicken Rice",
            "calories": 550,
            "protein_g": 35,
            "carbs_g": 60,
            "fats_g": 12,
            "fiber_g": 3,
            "sugar_g": 2,
            "sodium_mg": 640,
            "health_notes": "Balanced plate.",
            "ingredients": [
                {"name": "rice", "calories": 300, "protein_g": 6, "carbs_g": 58},
                {"name": "chicken", "calories": 250, "protein_g": 29, "fats_g": 12},
            ],
        }
    )
    calls: list[dict[str, object]] = field(default_factory=list)

    async def analyze(
        self,
        image_bytes: bytes,
        language: str,
        hint_text: str | None = None,
        hint_ingredients: list[dict[str, object]] | None = None,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "image_bytes": image_bytes,
                "language": language,
                "hint_text": hint_text,
                "hint_ingredients": hint_ingredients,
            }
        )
        return self.payload


@dataclass
class SlowMealAnalyzer(MealAnalyzer):
    """Analyzer that never answers within a short timeout."""

    delay_seconds: float = 1.0

    async def analyze(
        self,
        image_bytes: bytes,
        language: str,
        hint_text: str | None = None,
        hint_ingredients: list[dict[str, object]] | None = None,
    ) -> dict[str, object]:
        await asyncio.sleep(self.delay_seconds)
        return {}


@dataclass
class FailingMealAnalyzer(MealAnalyzer):
    """Analyzer that raises the configured error."""

    error: Exception = field(default_factory=lambda: RuntimeError("upstream down"))

    async def analyze(
        self,
        image_bytes: bytes,
        language: str,
        hint_text: str | None = None,
        hint_ingredients: list[dict[str, object]] | None = None,
    ) -> dict[str, object]:
        raise self.error


@dataclass
class FakeImageClient(ImageClient):
    """Fake image client returning static bytes."""

    content: bytes = IMAGE_BYTES
    urls: list[str] = field(default_factory=list)

    async def download(self, url: str) -> bytes:
        self.urls.append(url)
        return self.content


def build_nutrition_service(
    repository: InMemoryMealRepository,
    analyzer: MealAnalyzer,
    clock: FakeClock,
    image_client: ImageClient | None = None,
    timeout_seconds: float = 60.0,
) -> NutritionService:
    return NutritionService(
        repository=repository,
        analysis_service=MealAnalysisService(
            analyzer=analyzer, timeout_seconds=timeout_seconds, clock=clock
        ),
        meals_cache=TTLCache(clock=clock),
        stats_cache=TTLCache(clock=clock),
        image_client=image_client,
        clock=clock,
    )


def build_test_container(
    settings: Settings, nutrition_service: NutritionService
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        nutrition_service=nutrition_service,
        close_resources=close_resources,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="test-header.test-payload.test-signature",
        admin_token="admin-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def meal_analyzer() -> FakeMealAnalyzer:
    return FakeMealAnalyzer()


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def nutrition_service(
    meal_repository: InMemoryMealRepository,
    meal_analyzer: FakeMealAnalyzer,
    clock: FakeClock,
    image_client: FakeImageClient,
) -> NutritionService:
    return build_nutrition_service(
        meal_repository, meal_analyzer, clock, image_client=image_client
    )


@pytest.fixture
def container(
    settings: Settings, nutrition_service: NutritionService
) -> AppContainer:
    return build_test_container(settings, nutrition_service)
