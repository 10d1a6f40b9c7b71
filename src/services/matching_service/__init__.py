"""HTTP-сервис подбора исполнителей."""
