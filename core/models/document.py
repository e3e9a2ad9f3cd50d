"""Electronic invoice document models.

Attributes are snake_case; the wire format uses the national schema's field
names, declared as aliases. Always dump with ``by_alias=True`` when a payload
leaves the process (storage, XML, HTTP).

Monetary amounts are Decimals with at most two decimal places and a fixed
number of digits; they serialize to JSON as numbers. Cross-field arithmetic
is checked separately by core.validators.business_rules. Free text must be
representable in XML 1.0.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    validate_email,
)

TAX_ID_PATTERN = r"^[0-9]{9,12}$"
SEQUENCE_PATTERN = r"^[0-9]{20}$"

# 13 integer digits and 2 decimals
MAX_AMOUNT = Decimal("9999999999999.99")


def _is_xml_char(char: str) -> bool:
    # XML 1.0 Char production
    code = ord(char)
    return (
        code in (0x9, 0xA, 0xD)
        or 0x20 <= code <= 0xD7FF
        or 0xE000 <= code <= 0xFFFD
        or 0x10000 <= code <= 0x10FFFF
    )


def _xml_compatible(value: str) -> str:
    for char in value:
        if not _is_xml_char(char):
            raise ValueError(f"contains a character not allowed in XML (U+{ord(char):04X})")
    return value


_AsNumber = PlainSerializer(float, return_type=float, when_used="json")

Money = Annotated[
    Decimal,
    Field(ge=0, le=MAX_AMOUNT, max_digits=15, decimal_places=2),
    _AsNumber,
]
# Quantities and exchange rates
Positive = Annotated[Decimal, Field(ge=Decimal("0.01"), max_digits=12, decimal_places=2), _AsNumber]
Rate = Annotated[Decimal, Field(ge=0, le=100, max_digits=5, decimal_places=2), _AsNumber]
Text = Annotated[str, AfterValidator(_xml_compatible)]


class DocumentType(str, Enum):
    """Tipo de comprobante."""

    INVOICE = "01"
    DEBIT_NOTE = "02"
    CREDIT_NOTE = "03"
    TICKET = "04"
    ACCEPTANCE = "05"
    PARTIAL_ACCEPTANCE = "06"
    REJECTION = "07"
    PURCHASE_INVOICE = "08"
    EXPORT_INVOICE = "09"


class IdType(str, Enum):
    """Tipo de identificación."""

    PHYSICAL = "01"
    LEGAL = "02"
    DIMEX = "03"
    NITE = "04"


class Currency(str, Enum):
    CRC = "CRC"
    USD = "USD"
    EUR = "EUR"


class UnitOfMeasure(str, Enum):
    UNIT = "Unid"
    KILOGRAM = "Kg"
    LITER = "Lt"
    METER = "Mt"
    HOURS = "Hrs"
    OTHER = "Otros"


class TaxCode(str, Enum):
    VAT = "01"
    SELECTIVE_CONSUMPTION = "02"
    FUEL = "03"
    ALCOHOL = "04"
    PACKAGED_BEVERAGES = "05"
    TOBACCO = "06"
    SERVICE = "07"
    VAT_USED_GOODS = "08"
    OTHER = "99"


class TaxRateCode(str, Enum):
    EXEMPT = "01"
    REDUCED_1 = "02"
    REDUCED_2 = "03"
    REDUCED_4 = "04"
    TRANSITORY_0 = "05"
    TRANSITORY_4 = "06"
    TRANSITORY_8 = "07"
    GENERAL_13 = "08"


class SaleCondition(str, Enum):
    CASH = "01"
    CREDIT = "02"
    CONSIGNMENT = "03"
    LAYAWAY = "04"
    LEASE_WITH_OPTION = "05"
    OTHER = "99"


class _WireModel(BaseModel):
    """Aliased, closed model: unknown fields are rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class _Party(_WireModel):
    name: Text = Field(..., min_length=1, max_length=100, alias="nombre")
    tax_id: str = Field(..., pattern=TAX_ID_PATTERN, alias="identificacion")
    email: Text | None = Field(None, alias="correoElectronico")
    phone: Text | None = Field(None, max_length=20, alias="telefono")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        # Empty string is accepted as "not provided"
        if value:
            validate_email(value)
        return value


class Issuer(_Party):
    """Emisor."""

    id_type: IdType = Field(IdType.LEGAL, alias="tipoIdentificacion")
    country_code: Text = Field("506", max_length=3, alias="codigoPais")
    province: Text | None = Field(None, max_length=50, alias="provincia")
    canton: Text | None = Field(None, max_length=50, alias="canton")
    district: Text | None = Field(None, max_length=50, alias="distrito")
    address: Text | None = Field(None, max_length=200, alias="direccion")


class Receiver(_Party):
    """Receptor."""

    id_type: IdType = Field(IdType.PHYSICAL, alias="tipoIdentificacion")


class Tax(_WireModel):
    """Impuesto applied to one line."""

    code: TaxCode = Field(TaxCode.VAT, alias="codigo")
    rate_code: TaxRateCode = Field(TaxRateCode.GENERAL_13, alias="codigoTarifa")
    rate: Rate = Field(13, alias="tarifa")
    amount: Money = Field(..., alias="monto")


class LineItem(_WireModel):
    """One line of detalleServicio."""

    line_number: int = Field(..., ge=1, alias="numeroLinea")
    code: Text | None = Field(None, max_length=20, alias="codigo")
    description: Text = Field(..., min_length=1, max_length=200, alias="descripcion")
    quantity: Positive = Field(..., alias="cantidad")
    unit_of_measure: UnitOfMeasure = Field(UnitOfMeasure.UNIT, alias="unidadMedida")
    unit_price: Money = Field(..., alias="precioUnitario")
    total_amount: Money = Field(..., alias="montoTotal")
    discount: Money = Field(0, alias="descuento")
    discount_reason: Text | None = Field(None, max_length=80, alias="naturalezaDescuento")
    subtotal: Money = Field(..., alias="subtotal")
    tax: Tax = Field(..., alias="impuesto")
    line_total: Money = Field(..., alias="montoTotalLinea")


class Summary(_WireModel):
    """resumenFactura: document-level aggregates."""

    taxed_services: Money = Field(0, alias="montoTotalServiciosGravados")
    exempt_services: Money = Field(0, alias="montoTotalServiciosExentos")
    taxed_goods: Money = Field(0, alias="montoTotalMercanciaGravada")
    exempt_goods: Money = Field(0, alias="montoTotalMercanciaExenta")
    total_taxed: Money = Field(..., alias="totalGravado")
    total_exempt: Money = Field(0, alias="totalExento")
    total_sale: Money = Field(..., alias="totalVenta")
    total_discounts: Money = Field(0, alias="totalDescuentos")
    total_net_sale: Money = Field(..., alias="totalVentaNeta")
    total_tax: Money = Field(..., alias="totalImpuesto")
    grand_total: Money = Field(..., alias="totalComprobante")


class Document(_WireModel):
    """A full electronic invoice (Factura)."""

    document_type: DocumentType = Field(DocumentType.INVOICE, alias="tipoDocumento")
    sequence: str | None = Field(None, pattern=SEQUENCE_PATTERN, alias="numeroConsecutivo")
    issued_at: str | None = Field(None, alias="fechaEmision")
    currency: Currency = Field(Currency.CRC, alias="codigoMoneda")
    exchange_rate: Positive = Field(1, alias="tipoCambio")
    issuer: Issuer = Field(..., alias="emisor")
    receiver: Receiver = Field(..., alias="receptor")
    lines: list[LineItem] = Field(..., min_length=1, max_length=1000, alias="detalleServicio")
    summary: Summary = Field(..., alias="resumenFactura")
    sale_condition: SaleCondition = Field(SaleCondition.CASH, alias="condicionVenta")
    credit_term: int | None = Field(None, ge=0, alias="plazoCredito")
    observations: Text | None = Field(None, max_length=1000, alias="observaciones")

    @field_validator("issued_at")
    @classmethod
    def _check_iso_timestamp(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                datetime.fromisoformat(value)
            except ValueError:
                raise ValueError("must be an ISO 8601 date")
        return value

    def to_payload(self) -> dict:
        """Wire-format dict (aliased, JSON-safe)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
