"""
Tests for API Pydantic schemas.

Validates that:
- Request/response models serialize correctly
- Error codes are properly structured
- Targeting blocks carry selection and legal targets
- The OpenAPI schema exposes every endpoint
"""

import pytest
from pydantic import ValidationError


class TestPydanticSchemas:
    """Tests for Pydantic schema validation."""

    def test_session_response_schema(self):
        """SessionResponse has all required fields."""
        from ..api.schemas import SessionResponse, SessionStatus

        response = SessionResponse(
            session_id="session-123",
            status=SessionStatus.ACTIVE,
            players=["alice", "bob"],
            created_at=1234567890.0,
        )

        data = response.model_dump(mode="json")
        assert data["session_id"] == "session-123"
        assert data["status"] == "active"
        assert data["rematch_of"] is None
        assert data["api_version"] == "v1"

    def test_action_response_with_targeting(self):
        """An open selection is described by the targeting block."""
        from ..api.schemas import ActionResponse, SessionStatus, TargetInfo, TargetingInfo

        response = ActionResponse(
            session_id="session-123",
            success=True,
            completed=False,
            status=SessionStatus.TARGETING,
            targeting=TargetingInfo(
                mode="spell",
                player_id="alice",
                card_id="card_002",
                target_type="any",
                legal_targets=[TargetInfo(type="player", player_id="bob")],
            ),
        )

        data = response.model_dump(mode="json")
        assert data["completed"] is False
        assert data["status"] == "targeting"
        assert data["targeting"]["selection"] == []
        assert data["targeting"]["legal_targets"] == [
            {"type": "player", "player_id": "bob", "instance_id": None}
        ]

    def test_game_state_response_schema(self):
        from ..api.schemas import BattlefieldCardInfo, GameStateResponse, PlayerInfo

        response = GameStateResponse(
            session_id="session-123",
            status="playing",
            turn=3,
            current_player_id="alice",
            deck_size=20,
            players=[
                PlayerInfo(
                    player_id="alice",
                    health=25,
                    max_health=25,
                    energy=2,
                    max_energy=3,
                    is_current_turn=True,
                    battlefield=[
                        BattlefieldCardInfo(
                            instance_id="card_001#1",
                            card_id="card_001",
                            name="Cyber Drone",
                            card_type="creature",
                            attack=2,
                            current_health=1,
                            max_health=1,
                        )
                    ],
                ),
            ],
        )

        data = response.model_dump()
        assert data["players"][0]["battlefield"][0]["sapped"] is False
        assert data["winner_id"] is None
        assert data["game_log"] == []

    def test_error_response_schema(self):
        """ErrorResponse has structured error code."""
        from ..api.schemas import ErrorResponse, ErrorCode

        response = ErrorResponse(
            error="Session not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": "abc"},
        )

        data = response.model_dump(mode="json")
        assert data["error_code"] == "SESSION_NOT_FOUND"
        assert data["details"]["session_id"] == "abc"

    def test_create_session_request_validation(self):
        """CreateSessionRequest requires at least one player."""
        from ..api.schemas import CreateSessionRequest

        with pytest.raises(ValidationError):
            CreateSessionRequest(player_ids=[])

        with pytest.raises(ValidationError):
            CreateSessionRequest(player_ids=["alice", "bob"], starting_health=0)

    def test_target_type_validation(self):
        from ..api.schemas import TargetInfo

        with pytest.raises(ValidationError):
            TargetInfo(type="planet", player_id="bob")


class TestErrorCodes:
    """Tests for error code enum."""

    def test_all_error_codes_defined(self):
        """All expected error codes exist."""
        from ..api.schemas import ErrorCode

        expected_codes = [
            "SESSION_NOT_FOUND",
            "TARGETING_ACTIVE",
            "NO_TARGETING",
            "INVALID_TARGET",
            "VALIDATION_ERROR",
            "INTERNAL_ERROR",
        ]

        for code in expected_codes:
            assert hasattr(ErrorCode, code), f"Missing error code: {code}"

    def test_error_code_values_are_strings(self):
        """Error codes serialize as strings."""
        from ..api.schemas import ErrorCode

        for code in ErrorCode:
            assert isinstance(code.value, str)
            assert code.value == code.name


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    @pytest.fixture
    def schema(self):
        from fastapi.openapi.utils import get_openapi

        from ..api.app import create_app
        from ..api.service import APIService

        app = create_app(APIService())
        return get_openapi(
            title=app.title,
            version=app.version,
            routes=app.routes,
        )

    def test_openapi_schema_generates(self, schema):
        """OpenAPI schema generates without errors."""
        assert "paths" in schema
        assert "components" in schema
        assert "schemas" in schema["components"]

    def test_response_models_in_schema(self, schema):
        """Response models appear in OpenAPI schema."""
        schemas = schema["components"]["schemas"]

        required_schemas = [
            "SessionResponse",
            "GameStateResponse",
            "ActionResponse",
            "TargetingInfo",
            "LegalActionsResponse",
            "CardListResponse",
            "ErrorResponse",
        ]

        for name in required_schemas:
            assert name in schemas, f"Missing schema: {name}"

    def test_endpoints_present(self, schema):
        paths = schema["paths"]

        assert "post" in paths["/api/v1/sessions"]
        assert "get" in paths["/api/v1/sessions/{session_id}/state"]
        assert "post" in paths["/api/v1/sessions/{session_id}/play"]
        assert "post" in paths["/api/v1/sessions/{session_id}/attack"]
        assert "post" in paths["/api/v1/sessions/{session_id}/targeting/click"]
        assert "post" in paths["/api/v1/sessions/{session_id}/targeting/confirm"]
        assert "post" in paths["/api/v1/sessions/{session_id}/targeting/cancel"]
        assert "get" in paths["/health"]

    def test_endpoints_have_response_models(self, schema):
        """Key endpoints declare their response models."""
        play = schema["paths"]["/api/v1/sessions/{session_id}/play"]["post"]
        ok = play["responses"]["200"]["content"]["application/json"]["schema"]
        assert ok["$ref"].endswith("/ActionResponse")
        assert "409" in play["responses"]
