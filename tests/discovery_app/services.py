from typing import Annotated, Any

from strix import Inject, injectable


@injectable
class GreetingService:
    def __init__(self, config: Annotated[Any, Inject("GREETING_CONFIG")]):
        self.config = config

    def greet(self, name: str) -> str:
        return f"{self.config.greeting}, {name}"
