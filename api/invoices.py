"""/api/invoices: issue, validate, send, query, list and delete electronic invoices."""

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import StatusFilter


class ValidateRequest(BaseModel):
    clave: str | None = None
    consecutivo: str | None = None
    payload: dict | None = None


class SendRequest(BaseModel):
    clave: str | None = None
    consecutivo: str | None = None


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def create_invoice_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    config = services["config"]

    # Handlers are sync; FastAPI runs them in its threadpool.

    @router.post("/invoices/issue", status_code=201)
    def issue_invoice(request: Request, payload: dict):
        invoice = invoice_svc.issue(payload)
        return success_response(
            invoice.model_dump(mode="json"), _request_id(request)
        ).model_dump(mode="json")

    @router.post("/invoices/validate")
    def validate_invoice(request: Request, body: ValidateRequest):
        outcome = invoice_svc.validate_by_key_or_payload(
            key=body.clave,
            sequence=body.consecutivo,
            payload=body.payload,
        )
        return success_response(
            outcome.model_dump(mode="json"), _request_id(request)
        ).model_dump(mode="json")

    @router.post("/invoices/send")
    def send_invoice(request: Request, body: SendRequest):
        outcome = invoice_svc.send(key=body.clave, sequence=body.consecutivo)
        return success_response(
            outcome.model_dump(mode="json"), _request_id(request)
        ).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Reads (fixed paths must be registered before /invoices/{sequence})
    # -------------------------------------------------------------------------

    @router.get("/invoices")
    def list_invoices(
        request: Request,
        status: StatusFilter = Query(StatusFilter.ALL),
        include_content: bool = Query(False, alias="includeContent"),
        limit: int = Query(config.list_default_limit, ge=1),
        offset: int = Query(0, ge=0),
    ):
        page = invoice_svc.list(
            status=status,
            include_content=include_content,
            limit=limit,
            offset=offset,
        )
        return success_response(
            page.model_dump(mode="json"), _request_id(request)
        ).model_dump(mode="json")

    @router.get("/invoices/status")
    def system_status(request: Request):
        data = invoice_svc.status()
        data["config"] = config.safe_dump()
        return success_response(
            {
                k: v.model_dump(mode="json") if isinstance(v, BaseModel) else v
                for k, v in data.items()
            },
            _request_id(request),
        ).model_dump(mode="json")

    @router.get("/invoices/{sequence}")
    def get_invoice(
        request: Request,
        sequence: str,
        include_content: bool = Query(True, alias="includeContent"),
    ):
        outcome = invoice_svc.query(sequence, include_content=include_content)
        return success_response(
            outcome.model_dump(mode="json"), _request_id(request)
        ).model_dump(mode="json")

    @router.delete("/invoices/{sequence}")
    def delete_invoice(request: Request, sequence: str):
        result = invoice_svc.delete(sequence)
        return success_response(
            {
                "sequence": sequence,
                "deleted": len(result.deleted),
                "errors": result.errors,
            },
            _request_id(request),
        ).model_dump(mode="json")

    return router
