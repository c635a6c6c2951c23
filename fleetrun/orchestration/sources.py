"""Descriptor sources: where the coordinator learns which migrations exist."""

from __future__ import annotations

import inspect
from typing import Callable, Iterable, Protocol, Sequence

from django.utils.module_loading import import_string

from .definitions import MIGRATION_META_ATTR, MigrationDescriptor


class DescriptorSource(Protocol):
    def list(self) -> Sequence[MigrationDescriptor]:
        ...


class StaticDescriptorSource:
    """Serve a fixed collection of descriptors."""

    def __init__(self, descriptors: Iterable[MigrationDescriptor] = ()) -> None:
        self._descriptors = tuple(descriptors)

    def list(self) -> Sequence[MigrationDescriptor]:
        return self._descriptors


class InstanceDescriptorSource:
    """Collect ``@migration``-marked methods from objects or modules.

    Service instances contribute their bound methods, keyed
    ``<ClassName>.<method>`` unless the decorator names a key. Modules
    contribute the marked functions they define, keyed
    ``<module>.<function>``; marked functions they merely import are left to
    their defining module.
    """

    def __init__(self, *owners: object) -> None:
        self._owners = owners

    def list(self) -> Sequence[MigrationDescriptor]:
        descriptors: list[MigrationDescriptor] = []
        for owner in self._owners:
            descriptors.extend(self._scan(owner))
        return descriptors

    @staticmethod
    def _scan(owner: object) -> Iterable[MigrationDescriptor]:
        is_module = inspect.ismodule(owner)
        service_name = owner.__name__ if is_module else type(owner).__name__
        for name, member in inspect.getmembers(owner, callable):
            if name.startswith("__"):
                continue
            # functions imported from elsewhere belong to their defining module
            if is_module and getattr(member, "__module__", None) != owner.__name__:
                continue
            options = getattr(member, MIGRATION_META_ATTR, None)
            if options is None:
                continue
            yield MigrationDescriptor.from_callable(
                member, options, service_name=service_name
            )


class CallableDescriptorSource:
    """Adapt a zero-argument factory returning descriptors."""

    def __init__(self, factory: Callable[[], Iterable[MigrationDescriptor]]) -> None:
        self._factory = factory

    def list(self) -> Sequence[MigrationDescriptor]:
        return tuple(self._factory())


def load_descriptor_source(path: str | None) -> DescriptorSource:
    """Resolve ``FLEETRUN_DESCRIPTOR_SOURCE`` into a DescriptorSource.

    The dotted path may name a source object, a source class (instantiated
    without arguments) or a function returning descriptors.
    """
    if not path:
        return StaticDescriptorSource()
    target = import_string(path)
    if inspect.isclass(target):
        target = target()
    if hasattr(target, "list") and callable(target.list):
        return target
    if callable(target):
        return CallableDescriptorSource(target)
    raise TypeError(f"{path} is neither a descriptor source nor callable")
