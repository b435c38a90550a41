"""
AbstractConfigProvider - environment-backed configuration objects.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..constants import CONFIG_PROPERTIES
from ..metadata import store
from .decorators import ConfigBinding
from .env import load_env_files
from .errors import ConfigValidationError


logger = logging.getLogger("strix.config")


def config_bindings(cls: type) -> List[ConfigBinding]:
    """``ConfigProperty`` bindings of ``cls`` and its bases, base first."""
    bindings: Dict[str, ConfigBinding] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for binding in store.read(klass, CONFIG_PROPERTIES):
            bindings[binding.attribute] = binding
    return list(bindings.values())


class AbstractConfigProvider:
    """
    Base class for config providers.

    On construction the ``.env`` files are loaded, the environment is
    validated through ``schema()`` (when defined) and every
    ``ConfigProperty`` attribute is populated from the result.

    The schema is a pydantic model whose field names are the environment
    variable names; pydantic supplies coercion and defaults.

    Example:
        class DatabaseSchema(BaseModel):
            DB_HOST: str = "localhost"
            DB_PORT: int = 5432

        @config_provider
        class DatabaseConfig(AbstractConfigProvider):
            host: str = ConfigProperty("DB_HOST")
            db_port: int = ConfigProperty()

            def schema(self):
                return DatabaseSchema
    """

    def __init__(self):
        load_env_files()
        self._values: Dict[str, Any] = {}
        self.populate()

    def schema(self) -> Optional[Type[BaseModel]]:
        return None

    def populate(self) -> None:
        """
        Validate the environment and assign bound attributes.

        Raises:
            ConfigValidationError: If the schema rejects the environment
        """
        values: Dict[str, Any] = dict(os.environ)

        model = self.schema()
        if model is not None:
            try:
                validated = model.model_validate(values)
            except PydanticValidationError as exc:
                raise ConfigValidationError(
                    type(self).__name__, exc.errors(include_url=False),
                ) from exc
            values.update(validated.model_dump())

        for binding in config_bindings(type(self)):
            if binding.env_key in values:
                setattr(self, binding.attribute, values[binding.env_key])
            else:
                logger.debug(
                    "%s.%s: %s is not set",
                    type(self).__name__, binding.attribute, binding.env_key,
                )

        self._values = values

    def get(self, env_key: str, default: Any = None) -> Any:
        """Validated value of an environment variable."""
        return self._values.get(env_key, default)
