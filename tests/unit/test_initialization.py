"""
Unit tests for initialization wave planning and execution.
"""
import pytest
from structlog.testing import capture_logs

from scopekit import Descriptor, InitializationError, ResolvedInstance, Token, plan_initialization, sort_descriptors
from scopekit.core.use_cases.initialization import run_initialization
from scopekit.shared.types import InitializationStrategy


A, B, C, D, E = (Token(name) for name in "ABCDE")


def wave_names(wave):
    return [entry.name for entry in wave]


def resolve(descriptors, values):
    """Capture entries in topological order, as a scope build would."""
    return [
        ResolvedInstance.capture(None, descriptor, values[descriptor.key], sequence)
        for sequence, descriptor in enumerate(sort_descriptors(descriptors))
    ]


@pytest.fixture
def example_descriptors():
    """A, B roots; C needs A and B; D needs A; E needs C and D."""
    return [
        Descriptor(A, lambda scope: None),
        Descriptor(B, lambda scope: None),
        Descriptor(C, lambda scope: None, depends_on=[A, B]),
        Descriptor(D, lambda scope: None, depends_on=[A]),
        Descriptor(E, lambda scope: None, depends_on=[C, D]),
    ]


class TestPlanInitialization:
    """Test cases for wave classification."""

    def test_example_order_follows_in_degree_zero_arrival(self, example_descriptors):
        """Test that D, freed by A, is sorted before C, which waits for B."""
        ordered = sort_descriptors(example_descriptors)

        assert [descriptor.name for descriptor in ordered] == ["A", "B", "D", "C", "E"]

    def test_two_wave_example(self, example_descriptors, tracked):
        """Test that roots and their direct dependents run before E."""
        values = {key: tracked(name) for key, name in zip([A, B, C, D, E], "ABCDE")}

        plan = plan_initialization(resolve(example_descriptors, values))

        assert wave_names(plan.pre_wave) == ["A", "B", "D", "C"]
        assert wave_names(plan.pos_wave) == ["E"]
        assert plan.size == 5

    def test_two_wave_skips_plain_values(self, example_descriptors, tracked):
        """Test that instances without initialize() join no wave."""
        values = {A: "plain", B: tracked("B"), C: tracked("C"), D: tracked("D"), E: tracked("E")}

        plan = plan_initialization(resolve(example_descriptors, values))

        # D waits on a plain value, which is never committed to the pre-wave
        assert wave_names(plan.pre_wave) == ["B"]
        assert wave_names(plan.pos_wave) == ["D", "C", "E"]

    def test_two_wave_always_has_two_waves(self):
        """Test that empty waves are still planned."""
        plan = plan_initialization(resolve([Descriptor(int, lambda scope: 3)], {int: 3}))

        assert plan.waves == [[], []]
        assert plan.size == 0

    def test_ranked_example(self, example_descriptors, tracked):
        """Test one wave per dependency rank."""
        values = {key: tracked(name) for key, name in zip([A, B, C, D, E], "ABCDE")}

        plan = plan_initialization(resolve(example_descriptors, values), InitializationStrategy.RANKED)

        assert [wave_names(wave) for wave in plan.waves] == [["A", "B"], ["D", "C"], ["E"]]
        assert plan.label(2) == "2"

    def test_ranked_passes_rank_through_plain_values(self, tracked):
        """Test that a plain value between two initializers keeps them apart."""
        first, middle, last = Token("first"), Token("middle"), Token("last")
        descriptors = [
            Descriptor(first, lambda scope: None),
            Descriptor(middle, lambda scope: None, depends_on=[first]),
            Descriptor(last, lambda scope: None, depends_on=[middle]),
        ]
        values = {first: tracked("first"), middle: object(), last: tracked("last")}

        plan = plan_initialization(resolve(descriptors, values), InitializationStrategy.RANKED)

        assert [wave_names(wave) for wave in plan.waves] == [["first"], ["last"]]

    def test_chain_depth_two_wave_versus_ranked(self, tracked):
        """Test that deep chains share the pos-wave unless ranked."""
        w, x, y, z = Token("W"), Token("X"), Token("Y"), Token("Z")
        descriptors = [
            Descriptor(w, lambda scope: None),
            Descriptor(x, lambda scope: None, depends_on=[w]),
            Descriptor(y, lambda scope: None, depends_on=[x]),
            Descriptor(z, lambda scope: None, depends_on=[y]),
        ]
        values = {key: tracked(key.name) for key in (w, x, y, z)}

        two_wave = plan_initialization(resolve(descriptors, values))
        ranked = plan_initialization(resolve(descriptors, values), InitializationStrategy.RANKED)

        assert wave_names(two_wave.pre_wave) == ["W", "X"]
        assert wave_names(two_wave.pos_wave) == ["Y", "Z"]
        assert [wave_names(wave) for wave in ranked.waves] == [["W"], ["X"], ["Y"], ["Z"]]


class TestRunInitialization:
    """Test cases for wave execution."""

    @pytest.mark.asyncio
    async def test_wave_runs_concurrently_with_barrier(self, example_descriptors, tracked, journal):
        """Test that pre-wave initializers overlap and settle before the pos-wave."""
        values = {key: tracked(name, delay=0.01) for key, name in zip([A, B, C, D, E], "ABCDE")}
        plan = plan_initialization(resolve(example_descriptors, values))

        await run_initialization(plan)

        assert journal[:4] == ["start A", "start B", "start D", "start C"]
        assert sorted(journal[4:8]) == ["end A", "end B", "end C", "end D"]
        assert journal[8:] == ["start E", "end E"]
        assert all(value.initialized for value in values.values())

    @pytest.mark.asyncio
    async def test_failure_waits_for_siblings_and_stops_later_waves(self, example_descriptors, tracked, journal):
        """Test that a failed wave settles fully and blocks the next one."""
        error = RuntimeError("connection refused")
        values = {
            A: tracked("A", error=error),
            B: tracked("B", delay=0.02),
            C: tracked("C"),
            D: tracked("D"),
            E: tracked("E"),
        }
        plan = plan_initialization(resolve(example_descriptors, values))

        with pytest.raises(InitializationError) as exc_info:
            await run_initialization(plan)

        assert exc_info.value.dependency == "A"
        assert exc_info.value.original is error
        assert exc_info.value.__cause__ is error
        assert exc_info.value.wave == 0
        assert "end B" in journal
        assert "start E" not in journal

    @pytest.mark.asyncio
    async def test_only_first_failure_is_surfaced(self, tracked):
        """Test that sibling failures in the same wave are logged and discarded."""
        first = RuntimeError("first")
        second = ValueError("second")
        descriptors = [Descriptor(A, lambda scope: None), Descriptor(B, lambda scope: None)]
        values = {A: tracked("A", error=first), B: tracked("B", error=second)}
        plan = plan_initialization(resolve(descriptors, values))

        with capture_logs() as logs:
            with pytest.raises(InitializationError) as exc_info:
                await run_initialization(plan, scope="test")

        assert exc_info.value.original is first
        discarded = [log for log in logs if log["event"] == "Discarding sibling initialization failure"]
        assert len(discarded) == 1
        assert discarded[0]["dependency"] == "B"
        assert discarded[0]["scope"] == "test"

    @pytest.mark.asyncio
    async def test_logs_waves_in_order(self, example_descriptors, tracked):
        """Test the wave log events of a two-wave run."""
        values = {key: tracked(name) for key, name in zip([A, B, C, D, E], "ABCDE")}
        plan = plan_initialization(resolve(example_descriptors, values))

        with capture_logs() as logs:
            await run_initialization(plan)

        waves = [(log["wave"], log["count"]) for log in logs if log["event"] == "Initializing wave"]
        assert waves == [("pre", 4), ("pos", 1)]
