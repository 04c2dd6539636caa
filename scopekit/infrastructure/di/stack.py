"""
Scope stack with nearest-scope-wins lookup.

The stack is an explicit object owned by the application rather than a
module-level global. Scopes are pushed and popped strictly at the top and
lookups walk from the top scope down to the first one holding the key.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Iterator, List, Optional

import structlog

from scopekit.core.domain.descriptor import Descriptor
from scopekit.infrastructure.di.config import RuntimeConfig
from scopekit.infrastructure.di.scope import MISSING, Scope
from scopekit.shared.exceptions import (
    DependencyTypeError,
    DisposalError,
    EmptyStackError,
    PreconditionError,
    UnregisteredDependencyError,
    is_programming_error,
)
from scopekit.shared.types import Key, expected_type, key_name

logger = structlog.get_logger(__name__)


class ScopeStack:
    """
    Ordered stack of open scopes.

    Usage:
        stack = ScopeStack()
        scope = stack.push([
            Descriptor(int, lambda scope: 3),
            Descriptor(str, lambda scope: f"Hello {scope.get(int)}", depends_on=(int,)),
        ])
        await scope.build()
        greeting = stack.get(str)
        stack.pop()
    """

    def __init__(self, config: Optional[RuntimeConfig] = None):
        self.config = config or RuntimeConfig()
        self._scopes: List[Scope] = []
        self._pushed = 0

    def __len__(self) -> int:
        return len(self._scopes)

    def __bool__(self) -> bool:
        return bool(self._scopes)

    def __iter__(self) -> Iterator[Scope]:
        """Iterate scopes from the bottom of the stack to the top."""
        return iter(list(self._scopes))

    def push(self, descriptors: Iterable[Descriptor] = (), name: Optional[str] = None) -> Scope:
        """
        Create a new unbuilt scope on top of the stack.

        Args:
            descriptors: Descriptors registered in the new scope
            name: Scope name used in log events; generated when omitted

        Returns:
            The pushed scope; call ``build()`` before resolving from it
        """
        descriptors = list(descriptors)
        self._pushed += 1
        name = name or f"scope-{self._pushed}"

        logger.debug(
            "Pushing scope",
            scope=name,
            dependencies=len(descriptors),
            depth=len(self._scopes) + 1
        )

        scope = Scope(self, descriptors, name=name, config=self.config)
        self._scopes.append(scope)
        return scope

    @property
    def current(self) -> Scope:
        """Top of the stack."""
        if not self._scopes:
            raise EmptyStackError("read")
        return self._scopes[-1]

    def pop(self, expected: Optional[Scope] = None) -> Scope:
        """
        Remove the top scope and dispose the instances it owns.

        Args:
            expected: When given, the scope the caller believes is on top

        Returns:
            The removed scope

        Raises:
            EmptyStackError: If no scope is open
            PreconditionError: If ``expected`` is not the top scope
            DisposalError: If an instance failed to dispose; the scope is
                removed regardless
        """
        if not self._scopes:
            raise EmptyStackError("pop")

        top = self._scopes[-1]
        if expected is not None and expected is not top:
            raise PreconditionError(
                f"Cannot pop {expected.name}: {top.name} is on top of the stack",
                details={"expected": expected.name, "top": top.name}
            )

        logger.debug("Popping scope", scope=top.name, depth=len(self._scopes))
        self._scopes.pop()
        top.dispose()
        return top

    def get(self, key: Key) -> Any:
        """
        Resolve ``key`` from the nearest scope that holds it.

        Raises:
            UnregisteredDependencyError: If no open scope holds the key
            DependencyTypeError: If the instance does not match the key's type
        """
        for scope in reversed(self._scopes):
            value = scope.lookup_local(key)
            if value is not MISSING:
                return self._checked(key, value)

        raise UnregisteredDependencyError(key_name(key))

    def __call__(self, key: Key) -> Any:
        return self.get(key)

    def _checked(self, key: Key, value: Any) -> Any:
        if not self.config.check_types:
            return value

        target = expected_type(key)
        if target is not None and not isinstance(value, target):
            raise DependencyTypeError(key_name(key), target.__qualname__, type(value).__qualname__)
        return value

    @asynccontextmanager
    async def managed(self, descriptors: Iterable[Descriptor], name: Optional[str] = None) -> AsyncIterator[Scope]:
        """
        Push and build a scope for the duration of a block.

        The scope is popped when the block exits, including when the build
        itself fails. Scopes pushed inside the block and still open at exit
        are popped first.

        Usage:
            async with stack.managed([Descriptor(Session, open_session)]) as scope:
                session = scope.get(Session)
        """
        scope = self.push(descriptors, name=name)
        try:
            try:
                await scope.build()
            except Exception as e:
                log = logger.error if is_programming_error(e) else logger.warning
                log("Scope build failed", scope=scope.name, error=str(e))
                raise
            yield scope
        finally:
            self._unwind_to(scope)

    def _unwind_to(self, scope: Scope) -> None:
        """
        Pop ``scope`` together with any scopes left open above it.

        Every scope is removed and disposed before the first disposal
        failure is raised.
        """
        if not any(open_scope is scope for open_scope in self._scopes):
            logger.warning("Managed scope already popped", scope=scope.name)
            return

        first_error: Optional[DisposalError] = None
        while True:
            top = self._scopes[-1]
            if top is not scope:
                logger.warning("Popping scope left open", scope=top.name, owner=scope.name)
            try:
                self.pop(expected=top)
            except DisposalError as e:
                if first_error is None:
                    first_error = e
            if top is scope:
                break

        if first_error is not None:
            raise first_error
