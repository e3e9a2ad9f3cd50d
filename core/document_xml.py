"""
XML rendition of an issued document (FacturaElectronica v4.3 layout).

This is the simulated authority's rendering: header, parties, line detail and
summary. It is not signed.
"""

from datetime import datetime
from decimal import Decimal

from lxml import etree

from core.models import Document

NAMESPACE = "https://cdn.comprobanteselectronicos.go.cr/xml-schemas/v4.3/facturaElectronica"
ACTIVITY_CODE = "001"


def _amount(value: Decimal) -> str:
    return f"{value:.5f}"


def _add(parent: etree._Element, tag: str, text: str | None = None) -> etree._Element:
    element = etree.SubElement(parent, f"{{{NAMESPACE}}}{tag}")
    if text is not None:
        element.text = text
    return element


def _party(parent: etree._Element, tag: str, party) -> None:
    node = _add(parent, tag)
    _add(node, "Nombre", party.name)
    identification = _add(node, "Identificacion")
    _add(identification, "Tipo", party.id_type.value)
    _add(identification, "Numero", party.tax_id)
    if party.email:
        _add(node, "CorreoElectronico", party.email)


def render_document_xml(document: Document, key: str, sequence: str, issued_at: datetime) -> str:
    """
    Render a document as an XML string.

    Args:
        document: Validated document
        key: 50-character document key
        sequence: 20-digit sequence number
        issued_at: Issuance timestamp (timezone-aware)

    Returns:
        UTF-8 XML text with declaration.
    """
    root = etree.Element(f"{{{NAMESPACE}}}FacturaElectronica", nsmap={None: NAMESPACE})

    _add(root, "Clave", key)
    _add(root, "CodigoActividad", ACTIVITY_CODE)
    _add(root, "NumeroConsecutivo", sequence)
    _add(root, "FechaEmision", issued_at.isoformat())
    _party(root, "Emisor", document.issuer)
    _party(root, "Receptor", document.receiver)
    _add(root, "CondicionVenta", document.sale_condition.value)
    if document.credit_term is not None:
        _add(root, "PlazoCredito", str(document.credit_term))

    detail = _add(root, "DetalleServicio")
    for line in document.lines:
        node = _add(detail, "LineaDetalle")
        _add(node, "NumeroLinea", str(line.line_number))
        _add(node, "Cantidad", _amount(line.quantity))
        _add(node, "UnidadMedida", line.unit_of_measure.value)
        _add(node, "Detalle", line.description)
        _add(node, "PrecioUnitario", _amount(line.unit_price))
        _add(node, "MontoTotal", _amount(line.total_amount))
        if line.discount:
            discount = _add(node, "Descuento")
            _add(discount, "MontoDescuento", _amount(line.discount))
            _add(discount, "NaturalezaDescuento", line.discount_reason or "Descuento")
        _add(node, "SubTotal", _amount(line.subtotal))
        tax = _add(node, "Impuesto")
        _add(tax, "Codigo", line.tax.code.value)
        _add(tax, "CodigoTarifa", line.tax.rate_code.value)
        _add(tax, "Tarifa", f"{line.tax.rate:.2f}")
        _add(tax, "Monto", _amount(line.tax.amount))
        _add(node, "MontoTotalLinea", _amount(line.line_total))

    summary = document.summary
    resume = _add(root, "ResumenFactura")
    currency = _add(resume, "CodigoTipoMoneda")
    _add(currency, "CodigoMoneda", document.currency.value)
    _add(currency, "TipoCambio", _amount(document.exchange_rate))
    _add(resume, "TotalServGravados", _amount(summary.taxed_services))
    _add(resume, "TotalServExentos", _amount(summary.exempt_services))
    _add(resume, "TotalMercanciasGravadas", _amount(summary.taxed_goods))
    _add(resume, "TotalMercanciasExentas", _amount(summary.exempt_goods))
    _add(resume, "TotalGravado", _amount(summary.total_taxed))
    _add(resume, "TotalExento", _amount(summary.total_exempt))
    _add(resume, "TotalVenta", _amount(summary.total_sale))
    _add(resume, "TotalDescuentos", _amount(summary.total_discounts))
    _add(resume, "TotalVentaNeta", _amount(summary.total_net_sale))
    _add(resume, "TotalImpuesto", _amount(summary.total_tax))
    _add(resume, "TotalComprobante", _amount(summary.grand_total))

    if document.observations:
        others = _add(root, "Otros")
        _add(others, "OtroTexto", document.observations)

    return etree.tostring(
        root, xml_declaration=True, encoding="UTF-8", pretty_print=True
    ).decode("utf-8")
