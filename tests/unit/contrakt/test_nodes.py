"""Unit tests for the workflow nodes."""

import json
from pathlib import Path

import pytest
from langchain_core.messages import HumanMessage

from contrakt.contributions import FileContributionSink, InMemoryContributionSink
from contrakt.models import ContractArtifact
from contrakt.nodes.contribute import (
    CONTRIBUTION_ACK_REPLY,
    CONTRIBUTION_FAILURE_REPLY,
    contribute_node,
)
from contrakt.nodes.create import CONTRACT_FAILURE_REPLY, create_node
from contrakt.nodes.fallback import FALLBACK_FAILURE_REPLY, fallback_node
from contrakt.nodes.info import INFO_FAILURE_REPLY, info_node
from contrakt.nodes.router import router_node
from contrakt.ports import GenerationError
from contrakt.state import ContractOutcome, ContributionOutcome, Operation, initial_state
from contrakt.templates import (
    DEFAULT_TEMPLATES,
    FREELANCE_TEMPLATE,
    TemplateIndex,
    TemplateLookupError,
)
from tests._support.fakes import (
    FailingGenerator,
    FailingRetriever,
    ScriptedGenerator,
    StaticRetriever,
)

CONTRIBUTION_JSON = json.dumps(
    {
        "type": "feature_suggestion",
        "description": "Dark mode",
        "details": "Add a dark theme to the editor",
        "impact": "Better accessibility",
        "priority": "low",
    }
)


@pytest.fixture
def base_state():
    """Create a base conversation state for testing."""
    return initial_state("Write me an NDA", [HumanMessage(content="Hello!")])


@pytest.fixture
def templates():
    return TemplateIndex.from_pairs(DEFAULT_TEMPLATES)


class TestRouterNode:
    """Tests for router_node function."""

    def test_routes_on_classifier_token(self, base_state):
        """Classifier output is normalized and recorded."""
        generator = ScriptedGenerator(["create"])

        result = router_node(base_state, generator=generator, temperature=0.7)

        assert result == {"messages": ["create"], "operation": Operation.CREATE}
        assert generator.calls[0]["temperature"] == 0.7
        assert generator.calls[0]["history"] == base_state["history"]

    def test_garbled_output_is_unknown(self, base_state):
        """Unmatched output still produces a message for routing."""
        result = router_node(base_state, generator=ScriptedGenerator([""]), temperature=0.7)

        assert result == {"messages": [""], "operation": Operation.UNKNOWN}

    def test_classifier_failure_returns_nothing(self, base_state, caplog):
        """A failed classification call yields no state update."""
        result = router_node(base_state, generator=FailingGenerator(), temperature=0.7)

        assert result == {}
        assert "Intent classification failed" in caplog.text

    def test_empty_input_skips_classification(self):
        """Blank input is not sent to the model."""
        generator = ScriptedGenerator()

        assert router_node(initial_state("  "), generator=generator, temperature=0.7) == {}
        assert generator.calls == []

    def test_records_node_span(self, base_state, telemetry_backend):
        """The router runs inside its own span."""
        router_node(base_state, generator=ScriptedGenerator(["info"]), temperature=0.7)

        span = telemetry_backend.spans[0]
        assert span.name == "router"
        assert span.attributes["contrakt.operation"] == "info"


class TestReplyNodes:
    """Tests for info_node and fallback_node."""

    @pytest.mark.parametrize("node", [info_node, fallback_node])
    def test_reply_is_result(self, base_state, node):
        """The generated text is both result and message."""
        result = node(base_state, generator=ScriptedGenerator(["Sure."]), temperature=0.7)

        assert result["result"] == "Sure."
        assert result["messages"] == ["Sure."]
        assert "contract_artifact" not in result

    @pytest.mark.parametrize(
        "node,reply", [(info_node, INFO_FAILURE_REPLY), (fallback_node, FALLBACK_FAILURE_REPLY)]
    )
    def test_failure_gives_fixed_reply(self, base_state, node, reply):
        """Port failures become a fixed reply, never an exception."""
        result = node(base_state, generator=FailingGenerator(), temperature=0.7)

        assert result["result"] == reply
        assert len(result["messages"]) == 1


class TestContributeNode:
    """Tests for contribute_node function."""

    def test_valid_contribution_is_stored(self, base_state, tmp_path):
        """Parsed records are persisted and acknowledged."""
        sink = FileContributionSink(tmp_path)

        result = contribute_node(
            base_state,
            generator=ScriptedGenerator([CONTRIBUTION_JSON]),
            sink=sink,
            temperature=0.7,
        )

        assert result["result"] == CONTRIBUTION_ACK_REPLY
        assert result["messages"] == [CONTRIBUTION_JSON]
        outcome = result["outcome"]
        assert isinstance(outcome, ContributionOutcome)
        assert sink.load(outcome.record_id).description == "Dark mode"

    def test_unparseable_output_not_stored(self, base_state, caplog):
        """Invalid JSON gives the failure reply and keeps the raw output."""
        sink = InMemoryContributionSink()

        result = contribute_node(
            base_state,
            generator=ScriptedGenerator(["I think the button is broken"]),
            sink=sink,
            temperature=0.7,
        )

        assert result["result"] == CONTRIBUTION_FAILURE_REPLY
        assert result["messages"] == ["I think the button is broken"]
        assert len(sink) == 0
        assert "Could not parse or store contribution" in caplog.text

    def test_generation_failure(self, base_state):
        """A failed structuring call gives the failure reply."""
        result = contribute_node(
            base_state,
            generator=FailingGenerator(),
            sink=InMemoryContributionSink(),
            temperature=0.7,
        )

        assert result["result"] == CONTRIBUTION_FAILURE_REPLY
        assert result["messages"] == ["Error processing contribution"]
        assert not result["outcome"].persisted

    def test_storage_failure(self, base_state, tmp_path):
        """A sink that cannot write gives the failure reply."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")

        result = contribute_node(
            base_state,
            generator=ScriptedGenerator([CONTRIBUTION_JSON]),
            sink=FileContributionSink(Path(blocker) / "sub"),
            temperature=0.7,
        )

        assert result["result"] == CONTRIBUTION_FAILURE_REPLY


class TestCreateNode:
    """Tests for create_node function."""

    DRAFT = "Here is your agreement.\n```contract\nFREELANCE SERVICES AGREEMENT\n```\nReview it."

    def _run(self, state, generator, templates, retriever=None):
        return create_node(
            state,
            generator=generator,
            retriever=retriever if retriever is not None else StaticRetriever(["<clause>"]),
            templates=templates,
            temperature=0.7,
            contract_temperature=0.4,
            contract_model="big-model",
        )

    def test_drafts_with_selected_template(self, base_state, templates):
        """Template body and passages reach the drafting call as context."""
        generator = ScriptedGenerator(["2", self.DRAFT])

        result = self._run(base_state, generator, templates)

        selection_call, draft_call = generator.calls
        assert "2: Freelance Services Agreement" in selection_call["system_prompt"]
        assert selection_call["history"] == []
        assert draft_call["temperature"] == 0.4
        assert draft_call["model"] == "big-model"
        assert draft_call["history"] == base_state["history"]
        assert draft_call["variables"]["context"] == (
            f"<doc>\n<clause>\n</doc>\n\nContract Template:\n{FREELANCE_TEMPLATE}"
        )

        artifact = result["contract_artifact"]
        assert isinstance(artifact, ContractArtifact)
        assert artifact.content == "FREELANCE SERVICES AGREEMENT"
        assert result["result"] == "Here is your agreement.\n\nReview it."
        assert result["messages"] == [self.DRAFT]
        assert result["outcome"].contract_type == "legal"

    def test_reply_without_block_has_no_artifact(self, base_state, templates):
        """Clarifying questions pass through without an artifact."""
        question = "Who are the parties to the NDA?"
        result = self._run(base_state, ScriptedGenerator(["1", question]), templates)

        assert result["result"] == question
        assert "contract_artifact" not in result

    def test_unknown_name_used_as_context(self, base_state, templates):
        """A free-text selection becomes the template context."""
        generator = ScriptedGenerator(["Boat Charter", "ok"])

        self._run(base_state, generator, templates)

        assert generator.calls[1]["variables"]["context"].endswith(
            "Contract Template:\nBoat Charter"
        )

    def test_out_of_range_selection_propagates(self, base_state, templates):
        """A bad template position is a defect, not a graceful reply."""
        generator = ScriptedGenerator(["7"])

        with pytest.raises(TemplateLookupError):
            self._run(base_state, generator, templates)

    @pytest.mark.parametrize(
        "replies,retriever",
        [
            ([GenerationError("down")], None),
            (["0", GenerationError("down")], None),
            (["0"], FailingRetriever()),
            (["   "], None),
        ],
    )
    def test_port_failures_give_apology(self, base_state, templates, replies, retriever):
        """Any non-lookup failure yields the fixed apology and no artifact."""
        result = self._run(base_state, ScriptedGenerator(replies), templates, retriever)

        assert result["result"] == CONTRACT_FAILURE_REPLY
        assert "contract_artifact" not in result
        assert isinstance(result["outcome"], ContractOutcome)
