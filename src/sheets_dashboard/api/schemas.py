from pydantic import BaseModel


class AppendRequest(BaseModel):
    """Body of ``POST /sheets/append``; field names match the sheet columns."""

    fecha: str | None = None
    tipo: str | None = None
    categoria: str | None = None
    importe: float | str | None = None
    estadoPago: bool | str | None = None
    descripcionAdicional: str | None = None


class AppendResponse(BaseModel):
    success: bool
    updatedRange: str | None = None


class RefreshResponse(BaseModel):
    status: str
