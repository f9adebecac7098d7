"""Unit tests for sydneyqt models."""

import pytest
from pydantic import ValidationError

from sydneyqt.models.ask import AskOptions, AskType, ChatFinishResult, ErrorType
from sydneyqt.models.config import Config, Migration, OpenAIBackend
from sydneyqt.models.reference import ImageReference, ReferenceKind, parse_reference
from sydneyqt.models.workspace import BUILTIN_BACKEND, DEFAULT_WORKSPACE_TITLE, Workspace


class TestAskOptions:
    """Tests for AskOptions model."""

    def test_defaults(self) -> None:
        options = AskOptions(prompt="Hello")
        assert options.type == AskType.TEXT
        assert options.openai_backend == ""
        assert options.model == ""

    def test_blank_prompt_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AskOptions(prompt="   ")

    def test_document_qa_requires_file(self) -> None:
        with pytest.raises(ValidationError):
            AskOptions(prompt="Summarize", type=AskType.DOCUMENT_QA)

        options = AskOptions(
            prompt="Summarize", type=AskType.DOCUMENT_QA, upload_file_path="/tmp/a.pdf"
        )
        assert options.upload_file_path == "/tmp/a.pdf"

    def test_ask_type_values(self) -> None:
        assert AskType(1) == AskType.GENERATE_IMAGE
        assert AskType(3) == AskType.GENERATE_MUSIC


class TestChatFinishResult:
    """Tests for ChatFinishResult model."""

    def test_ok(self) -> None:
        result = ChatFinishResult.ok(reply="Hi")
        assert result.success is True
        assert result.err_type is None
        assert result.canceled is False

    def test_failure(self) -> None:
        result = ChatFinishResult.failure(ErrorType.RATE_LIMITED, "slow down")
        assert result.success is False
        assert result.err_type == ErrorType.RATE_LIMITED
        assert result.err_type.value == "RateLimited"

    def test_canceled(self) -> None:
        result = ChatFinishResult.failure(ErrorType.CANCELED, "canceled")
        assert result.canceled is True


class TestDataReference:
    """Tests for the DataReference union."""

    def test_parse_image(self) -> None:
        ref = parse_reference(
            {"uuid": "u1", "type": "image", "data": {"base64_url": "data:image/jpeg;base64,AA"}}
        )
        assert isinstance(ref, ImageReference)
        assert ref.type == ReferenceKind.IMAGE
        assert ref.data.bing_url == ""

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_reference({"uuid": "u1", "type": "audio", "data": {}})

    def test_payload_must_match_type(self) -> None:
        with pytest.raises(ValidationError):
            parse_reference({"uuid": "u1", "type": "document", "data": {"url": "x"}})

    def test_empty_document_text_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_reference(
                {"uuid": "u1", "type": "document", "data": {"name": "a", "ext": ".md", "text": ""}}
            )


class TestWorkspace:
    """Tests for Workspace model."""

    def test_defaults(self) -> None:
        workspace = Workspace(id=1)
        assert workspace.title == DEFAULT_WORKSPACE_TITLE
        assert workspace.backend == BUILTIN_BACKEND
        assert workspace.data_references == []

    def test_frozen(self) -> None:
        workspace = Workspace(id=1)
        with pytest.raises(ValidationError):
            workspace.title = "Changed"  # type: ignore[misc]

    def test_find_reference(self, sample_image_ref: ImageReference) -> None:
        workspace = Workspace(id=1, data_references=[sample_image_ref])
        assert workspace.find_reference("img-1") == sample_image_ref
        assert workspace.find_reference("missing") is None


class TestConfig:
    """Tests for Config invariants."""

    def test_duplicate_backend_names_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Config(open_ai_backends=[OpenAIBackend(name="a"), OpenAIBackend(name="a")])

    def test_reserved_backend_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Config(open_ai_backends=[OpenAIBackend(name=BUILTIN_BACKEND)])

    def test_duplicate_workspace_ids_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Config(workspaces=[Workspace(id=1), Workspace(id=1)])

    def test_dangling_current_workspace_repaired(self) -> None:
        config = Config(workspaces=[Workspace(id=3), Workspace(id=5)], current_workspace_id=9)
        assert config.current_workspace_id == 3

        empty = Config(current_workspace_id=2)
        assert empty.current_workspace_id is None

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ValidationError):
            OpenAIBackend(name="a", openai_threshold=-1)

    def test_unknown_keys_ignored(self) -> None:
        config = Config.model_validate({"some_future_option": True})
        assert not hasattr(config, "some_future_option")


class TestMigrationRecord:
    """Tests for the Migration record model."""

    def test_legacy_flags_become_ids(self) -> None:
        record = Migration.model_validate({"theme_color_20240304": True, "quick_20240326": False})
        assert record.applied == ["theme_color_20240304"]

    def test_mark_applied_is_append_only(self) -> None:
        record = Migration(applied=["a_20240101"])
        record.mark_applied("b_20240102")
        record.mark_applied("a_20240101")
        assert record.applied == ["a_20240101", "b_20240102"]
        assert record.is_applied("b_20240102")
