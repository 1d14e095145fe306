"""Supabase repository for meals."""

from dataclasses import dataclass

from supabase import Client

from meal_insights.domain.errors import StoreError
from meal_insights.domain.meals import MealFilter, StoredMeal
from meal_insights.services.nutrition import MealRepository


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meal rows."""

    client: Client
    table_name: str = "meals"

    def find_meals(self, meal_filter: MealFilter) -> list[StoredMeal]:
        """Return the owner's meals, ordered by creation time."""
        query = (
            self.client.table(self.table_name)
            .select("*")
            .eq("user_id", meal_filter.owner_id)
        )
        if meal_filter.created_from is not None:
            query = query.gte("created_at", meal_filter.created_from.isoformat())
        if meal_filter.created_to is not None:
            query = query.lte("created_at", meal_filter.created_to.isoformat())
        query = query.order("created_at", desc=meal_filter.newest_first)
        if meal_filter.limit is not None:
            query = query.range(
                meal_filter.offset, meal_filter.offset + meal_filter.limit - 1
            )
        response = query.execute()
        return [dict(row) for row in response.data or []]

    def create_meal(self, fields: dict[str, object]) -> StoredMeal:
        """Insert a meal row and return it."""
        response = self.client.table(self.table_name).insert(fields).execute()
        if not response.data:
            raise StoreError("Failed to create meal")
        return dict(response.data[0])

    def update_meal(self, meal_id: int, fields: dict[str, object]) -> StoredMeal:
        """Update a meal row and return it."""
        response = (
            self.client.table(self.table_name)
            .update(fields)
            .eq("meal_id", meal_id)
            .execute()
        )
        if not response.data:
            raise StoreError(f"Failed to update meal {meal_id}")
        return dict(response.data[0])

    def find_one_meal(self, meal_id: int, owner_id: str) -> StoredMeal | None:
        """Return a meal only when it belongs to the owner."""
        response = (
            self.client.table(self.table_name)
            .select("*")
            .eq("meal_id", meal_id)
            .eq("user_id", owner_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return dict(response.data[0])
