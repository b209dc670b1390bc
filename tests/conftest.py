"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory database session, feature flags, call request/result factories
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import uuid

import pytest


@pytest.fixture
async def test_async_db():
    """
    Create in-memory SQLite async database for testing.

    Yields:
        AsyncSession: Test database session with cleanup (lazy imported to avoid settings issues)
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from concierge.boundary.db import models  # noqa: F401
    from concierge.boundary.db.base import Base

    # Use SQLite in-memory database for tests
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def simulated_features():
    """Feature flags for the default simulated mode."""
    from concierge.configs.features import FeatureSettings

    return FeatureSettings(
        kestra_enabled=False,
        call_simulation_enabled=True,
        admin_test_number="",
    )


@pytest.fixture
def live_features():
    """Feature flags for real calls straight to providers."""
    from concierge.configs.features import FeatureSettings

    return FeatureSettings(
        kestra_enabled=False,
        call_simulation_enabled=False,
        admin_test_number="",
    )


@pytest.fixture
def test_mode_features():
    """Feature flags for real calls redirected to two admin phones."""
    from concierge.configs.features import FeatureSettings

    return FeatureSettings(
        kestra_enabled=False,
        call_simulation_enabled=False,
        admin_test_number="(864) 555-0001, 864-555-0002",
    )


@pytest.fixture
def make_call_request():
    """Factory for valid CallRequest objects."""
    from concierge.models.calls import CallRequest

    def _make(**overrides) -> CallRequest:
        fields = {
            "provider_name": "Ace Plumbing",
            "provider_phone": "+18645550100",
            "service_needed": "plumber",
            "user_criteria": "Licensed, available this week",
            "location": "Greenville, SC",
            "urgency": "within_2_days",
        }
        fields.update(overrides)
        return CallRequest(**fields)

    return _make


@pytest.fixture
def make_call_result():
    """Factory for CallResult objects with structured data overrides."""
    from concierge.models.calls import (
        CallAnalysis,
        CallProviderInfo,
        CallResult,
        StructuredCallData,
    )

    def _make(status: str = "completed", provider_name: str = "Ace Plumbing", **structured) -> CallResult:
        data = {
            "availability": "available",
            "earliest_availability": "Tomorrow 9am",
            "estimated_rate": "$95/hour",
            "single_person_found": True,
            "all_criteria_met": True,
            "call_outcome": "positive",
            "recommended": True,
        }
        data.update(structured)
        return CallResult(
            status=status,
            call_id=f"call-{uuid.uuid4().hex[:8]}",
            call_method="simulated",
            duration=2.5,
            ended_reason="customer-ended-call",
            transcript="AI: Hello\nProvider: Hi, how can I help?",
            analysis=CallAnalysis(
                summary=f"Spoke with {provider_name}",
                structured_data=StructuredCallData(**data),
                success_evaluation="true",
            ),
            provider=CallProviderInfo(
                name=provider_name,
                phone="+18645550100",
                service="plumber",
                location="Greenville, SC",
            ),
            cost=0.12,
        )

    return _make
