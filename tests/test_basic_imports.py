"""
Basic import tests to verify the core functionality.
"""

import io
import logging


def test_package_imports():
    """Test that the top-level package exposes the engine and stores."""
    from personalization_service import (
        PersonalizationConfig,
        PersonalizationEngine,
        MemoryStore,
        JsonFileStore,
        build_engine,
    )

    assert callable(build_engine)
    engine = build_engine(PersonalizationConfig(), MemoryStore(), MemoryStore())
    assert isinstance(engine, PersonalizationEngine)
    assert JsonFileStore is not None


def test_subpackage_imports():
    """Test that each subsystem can be imported on its own."""
    from personalization_service.tracking import InteractionStore, VoteStore, SeenStore
    from personalization_service.recommendations import (
        compute_affinity,
        reorder_rows,
        manage_dynamic_rails,
        generate_personalized_rails,
    )
    from personalization_service.feed import (
        apply_daily_shuffle,
        EventCache,
        CachedEventsLoader,
    )

    for fn in (compute_affinity, reorder_rows, manage_dynamic_rails, generate_personalized_rails, apply_daily_shuffle):
        assert callable(fn)
    for cls in (InteractionStore, VoteStore, SeenStore, EventCache, CachedEventsLoader):
        assert isinstance(cls, type)


def test_models_validate_items():
    """Test that ContentItem coerces ids and keeps extra fields."""
    from personalization_service.models import ContentItem

    item = ContentItem.model_validate({"id": 12, "title": "Show", "city": "Toronto"})
    assert item.id == "12"
    assert item.model_dump()["city"] == "Toronto"


def test_logging_setup_and_stop():
    """Test the queue-based logging configuration."""
    from personalization_service.logging_config import logging_config, setup_logging, stop_logging

    output = io.StringIO()
    setup_logging(debug=False, stream=output)
    try:
        assert logging_config.running
        assert logging.getLogger("werkzeug").level == logging.WARNING
        logging.getLogger("personalization_service.test").info("queued record")
        logging.getLogger("werkzeug").info("GET /health 200")
    finally:
        stop_logging()

    assert not logging_config.running
    assert "queued record" in output.getvalue()
    assert "GET /health" not in output.getvalue()
