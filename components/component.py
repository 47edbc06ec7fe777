"""
Component base, naming registry and the transform hook.

Every cloudkit component is a ``pulumi.ComponentResource`` built through
``Component``. Construction registers the logical name with a ``Registry``
(one per deployment pass) so two components cannot share a name within the
same parent scope. ``transform`` is the hook that lets callers adjust the
arguments of an underlying resource before it is declared:

    with Registry(app="shop", stage="dev") as registry:
        Bucket("Uploads", transform={"bucket": {"force_destroy": False}})
"""

import re
from typing import Any, Callable

import pulumi

from components import _helpers
from components.error import DuplicateNameError, ValidationError, VisibleError

# A hook is either called with (args, opts, name) and mutates args in place,
# or is a dict whose keys override the default args.
Transform = (
    Callable[[dict[str, Any], pulumi.ResourceOptions, str], Any] | dict[str, Any]
)

_NAME_PATTERN = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_RESERVED_NAMES = {"app"}

_warned: set[str] = set()


def warn_once(message: str) -> None:
    """Log a warning through the Pulumi engine, once per message."""
    if message in _warned:
        return
    _warned.add(message)
    pulumi.log.warn(message)


def transform(
    hook: Transform | None,
    name: str,
    args: dict[str, Any],
    opts: pulumi.ResourceOptions,
) -> tuple[str, dict[str, Any], pulumi.ResourceOptions]:
    """
    Apply a user hook to the default arguments of a resource.

    Args:
        hook: None, a callable ``(args, opts, name)`` that mutates ``args``
            (its return value is ignored), or a dict shallow-merged over
            ``args`` (the hook wins).
        name: Logical name the resource will be declared with.
        args: Default keyword arguments for the resource.
        opts: Resource options for the resource.

    Returns:
        ``(name, args, opts)`` ready for ``Resource(name, opts=opts, **args)``.
    """
    if hook is None:
        return name, args, opts
    if callable(hook):
        hook(args, opts, name)
        return name, args, opts
    if isinstance(hook, dict):
        return name, {**args, **hook}, opts
    raise ValidationError(
        f'The transform for "{name}" must be a function or a dict, '
        f"got {type(hook).__name__}."
    )


class Registry:
    """
    Naming namespace for a single deployment pass.

    Use as a context manager. While active, components built without an
    explicit ``registry=`` use it; on a clean exit a ``LinkRef`` is declared
    for every top-level linkable component.
    """

    _active: "Registry | None" = None

    def __init__(self, app: str = "app", stage: str = "dev"):
        self.app = app
        self.stage = stage
        self._names: dict[tuple[tuple[str, ...], str], str] = {}
        self._top_level: list["Component"] = []

    def __enter__(self) -> "Registry":
        if Registry._active is not None:
            raise VisibleError("Another deployment pass is already in progress.")
        Registry._active = self
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.close()
        finally:
            Registry._active = None
        return False

    @classmethod
    def active(cls) -> "Registry":
        if cls._active is None:
            raise VisibleError(
                "No deployment pass in progress. Build components inside "
                "`with Registry(...)` or pass `registry=` explicitly."
            )
        return cls._active

    def register(
        self,
        type_: str,
        name: str,
        scope: tuple[str, ...] = (),
    ) -> None:
        """
        Claim ``name`` inside ``scope`` (the parent's path, empty at the top).

        Raises:
            ValidationError: reserved name.
            DuplicateNameError: the name is taken in that scope, regardless of
                case or component type.
        """
        lowered = name.lower()
        if not scope and lowered in _RESERVED_NAMES:
            raise ValidationError(
                f'Component name "{name}" is reserved. Please choose a '
                f'different name for your "{type_}" component.'
            )
        key = (scope, lowered)
        if key in self._names:
            where = "/".join(scope) or "the app"
            raise DuplicateNameError(
                f'Component name "{name}" is not unique in {where}; it is '
                f'already used by a "{self._names[key]}" component.'
            )
        self._names[key] = type_
        pulumi.log.debug(f"registered {type_} {'/'.join(scope + (name,))}")

    def track(self, component: "Component") -> None:
        self._top_level.append(component)

    def close(self) -> None:
        """Declare link references for top-level linkable components."""
        from components.link import register_link_refs

        register_link_refs(self._top_level)
        self._top_level = []


class Component(pulumi.ComponentResource):
    """
    Base for every cloudkit component.

    Subclasses pass a type tag like ``"cloudkit:aws:Bucket"``. Child resources
    are declared with ``parent=self``; nested components inherit the registry
    from their parent.
    """

    def __init__(
        self,
        type_: str,
        name: str,
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ):
        opts = opts or pulumi.ResourceOptions()
        parent = opts.parent if isinstance(opts.parent, Component) else None
        if registry is None:
            registry = parent.registry if parent else Registry.active()

        if not _NAME_PATTERN.match(name):
            raise ValidationError(
                f'Invalid component name "{name}" ({type_}). Component names '
                "must start with an uppercase letter and contain only "
                "alphanumeric characters."
            )
        scope = parent.scope if parent else ()
        # Checked before registering with the engine: a clash declares nothing.
        registry.register(type_, name, scope)

        super().__init__(type_, name, None, opts)

        self.registry = registry
        self.type_ = type_
        self.component_name = name
        self.scope: tuple[str, ...] = scope + (name,)
        if opts.parent is None:
            registry.track(self)

    @property
    def nodes(self) -> dict[str, Any]:
        """The underlying resources this component created, by friendly name."""
        return {}

    def physical_name(self, max_length: int, suffix: str = "") -> str:
        """Provider-facing name derived from app, stage and component name."""
        return _helpers.physical_name(
            max_length,
            self.registry.app,
            self.registry.stage,
            "-".join(self.scope),
            suffix,
        )
