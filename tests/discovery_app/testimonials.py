from strix import injectable


@injectable
class TestimonialService:
    def featured(self) -> list:
        return ["Works as advertised"]
