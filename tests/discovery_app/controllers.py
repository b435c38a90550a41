from typing import Annotated

from strix import GET, Param, controller

from .services import GreetingService


@controller("/greet")
class GreetingController:
    def __init__(self, greetings: GreetingService):
        self.greetings = greetings

    @GET("/:name")
    async def greet(self, name: Annotated[str, Param("name")]):
        return {"message": self.greetings.greet(name)}
