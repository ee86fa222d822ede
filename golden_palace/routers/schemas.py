from pydantic import BaseModel, ConfigDict, Field


class ReservationIn(BaseModel):
    # Fields are optional here so a missing value gets the form-level message
    # instead of a per-field validation error.
    model_config = ConfigDict(populate_by_name=True)

    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    email: str | None = None
    date: str | None = None
    time: str | None = None
    phone: str | None = None

    def is_complete(self) -> bool:
        values = (self.first_name, self.last_name, self.email, self.date, self.time, self.phone)
        return all(value is not None and value.strip() for value in values)


class ReservationOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    reservation_id: str = Field(alias="reservationId")


class ErrorOut(BaseModel):
    success: bool = False
    message: str
