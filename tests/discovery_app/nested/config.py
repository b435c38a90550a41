from pydantic import BaseModel

from strix import AbstractConfigProvider, ConfigProperty, config_provider


class GreetingSchema(BaseModel):
    GREETING: str = "Hello"


@config_provider
class GreetingConfigProvider(AbstractConfigProvider):
    greeting = ConfigProperty()

    def schema(self):
        return GreetingSchema
