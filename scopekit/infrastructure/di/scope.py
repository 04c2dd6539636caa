"""
Scopes: units of dependency resolution, ownership and disposal.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from scopekit.core.domain.capabilities import ResolvedInstance
from scopekit.core.domain.descriptor import Descriptor
from scopekit.core.use_cases.disposal import dispose_owned
from scopekit.core.use_cases.graph_builder import sort_descriptors
from scopekit.core.use_cases.initialization import plan_initialization, run_initialization
from scopekit.infrastructure.di.config import RuntimeConfig
from scopekit.shared.contracts import require
from scopekit.shared.exceptions import DescriptorError
from scopekit.shared.types import Key

if TYPE_CHECKING:
    from scopekit.infrastructure.di.stack import ScopeStack

logger = structlog.get_logger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _accepts_registrations(scope: "Scope", *args, **kwargs) -> bool:
    return not scope._build_started


class Scope:
    """
    A set of descriptors and the instances built from them.

    Scopes are created by :meth:`ScopeStack.push` and hold the descriptors
    given there until :meth:`build` runs. Lookups made through a scope search
    the whole stack, nearest scope first, so factories can read instances
    from enclosing scopes as well as from earlier siblings.
    """

    def __init__(
        self,
        stack: "ScopeStack",
        descriptors: Iterable[Descriptor] = (),
        name: str = "",
        config: Optional[RuntimeConfig] = None
    ):
        self.name = name
        self._stack = stack
        self._config = config or RuntimeConfig()
        self._descriptors: Dict[Key, Descriptor] = {}
        self._instances: Dict[Key, ResolvedInstance] = {}
        self._build_started = False
        self._built = False
        self._disposed = False
        self._log = logger.bind(scope=name)

        for descriptor in descriptors:
            self._add(descriptor)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "built" if self._built else "pending"
        return f"<Scope {self.name} {state} dependencies={len(self._descriptors)}>"

    @property
    def descriptors(self) -> Tuple[Descriptor, ...]:
        """Registered descriptors in registration order."""
        return tuple(self._descriptors.values())

    @property
    def is_built(self) -> bool:
        return self._built

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _add(self, descriptor: Descriptor) -> None:
        if not isinstance(descriptor, Descriptor):
            raise DescriptorError(f"Expected a Descriptor, got {descriptor!r}")

        if descriptor.key in self._descriptors:
            self._log.debug("Replacing dependency", dependency=descriptor.name)
        else:
            self._log.debug("Registering dependency", dependency=descriptor.name)
        # Replacement keeps the original registration position
        self._descriptors[descriptor.key] = descriptor

    @require(_accepts_registrations, "Dependencies can only be registered before the scope is built")
    def register(self, key: Key, factory: Callable[["Scope"], Any], depends_on: Iterable[Key] = ()) -> None:
        """
        Register a factory, replacing any existing one for the same key.

        Args:
            key: Class or Token identifying the produced value
            factory: Callable receiving this scope and returning the value
            depends_on: Keys the factory resolves while running
        """
        self._add(Descriptor(key=key, factory=factory, depends_on=tuple(depends_on)))

    @require(_accepts_registrations, "Dependencies can only be registered before the scope is built")
    def register_descriptor(self, descriptor: Descriptor) -> None:
        """Register a prepared descriptor, replacing any existing one for its key."""
        self._add(descriptor)

    @require(_accepts_registrations, "Scope build can only run once")
    def build(self) -> Awaitable["Scope"]:
        """
        Instantiate and initialize every registered dependency.

        Descriptors are sorted topologically and instantiated in that order;
        each instance is stored as soon as its factory returns, so later
        factories can resolve it. Initializers then run in waves according to
        the configured strategy.

        The scope is marked as building when ``build()`` is called, not when
        the returned awaitable first runs, so a second call always fails even
        if the first has not been awaited yet.

        Returns:
            Awaitable resolving to this scope once every wave has settled

        Raises:
            PreconditionError: If build() was already called
            UnresolvedDependencyError: If a declared dependency is not registered
            CyclicDependencyError: If the dependencies form a cycle
            InitializationError: If an initializer raised
        """
        self._build_started = True
        return self._build()

    async def _build(self) -> "Scope":
        ordered = sort_descriptors(list(self._descriptors.values()))

        resolved: List[ResolvedInstance] = []
        for sequence, descriptor in enumerate(ordered):
            self._log.info("Instantiating dependency", dependency=descriptor.name)
            value = descriptor.factory(self)
            entry = ResolvedInstance.capture(self, descriptor, value, sequence)
            self._instances[descriptor.key] = entry
            resolved.append(entry)

        plan = plan_initialization(resolved, self._config.initialization_strategy)
        await run_initialization(plan, scope=self.name)

        self._built = True
        return self

    def get(self, key: Key) -> Any:
        """Resolve ``key`` through the stack, nearest scope first."""
        return self._stack.get(key)

    def __call__(self, key: Key) -> Any:
        return self.get(key)

    def lookup_local(self, key: Key) -> Any:
        """Return this scope's own instance for ``key``, or ``MISSING``."""
        entry = self._instances.get(key)
        if entry is None:
            return MISSING
        return entry.value

    def __contains__(self, key: Key) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def dispose(self) -> int:
        """
        Release every disposable instance this scope owns.

        Returns:
            Number of instances disposed

        Raises:
            DisposalError: If any dispose() call raised
        """
        entries = list(self._instances.values())
        self._instances.clear()
        self._disposed = True

        return dispose_owned(self, entries, self._config.disposal_order, scope=self.name)
