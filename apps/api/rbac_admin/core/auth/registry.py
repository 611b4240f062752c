"""
Authorization plugin registry.

Policy engines register themselves with a decorator:

    @AuthRegistry.policy_engine("my_engine")
    class MyPolicyEngine(PolicyEngine):
        ...

    # Later, get by name:
    engine = AuthRegistry.get_policy_engine("my_engine")
"""

from typing import Type, Callable, Any
from .interfaces import PolicyEngine


class AuthRegistry:
    """Central registry for authorization components."""

    _policy_engines: dict[str, Type[PolicyEngine]] = {}

    @classmethod
    def policy_engine(cls, name: str) -> Callable[[Type[PolicyEngine]], Type[PolicyEngine]]:
        """Decorator to register a policy engine."""
        def decorator(engine_class: Type[PolicyEngine]) -> Type[PolicyEngine]:
            cls._policy_engines[name] = engine_class
            return engine_class
        return decorator

    @classmethod
    def get_policy_engine(cls, name: str, **kwargs: Any) -> PolicyEngine:
        """
        Get a policy engine by name.

        Args:
            name: Registered name of the engine
            **kwargs: Arguments to pass to engine constructor

        Raises:
            ValueError: If engine not found
        """
        engine_class = cls._policy_engines.get(name)
        if not engine_class:
            available = list(cls._policy_engines.keys())
            raise ValueError(
                f"Unknown policy engine: '{name}'. "
                f"Available: {available}"
            )
        return engine_class(**kwargs)

    @classmethod
    def list_policy_engines(cls) -> list[str]:
        """List all registered policy engine names."""
        return list(cls._policy_engines.keys())
