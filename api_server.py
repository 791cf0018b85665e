"""
CalcPad API Server - FastAPI backend for an editor frontend
Every request evaluates the document it carries; nothing is kept between
requests.
"""

from typing import Dict, List, Optional
from datetime import datetime

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from constants import (
    API_HOST, API_PORT, APP_NAME, APP_VERSION, DEFAULT_DECIMAL_PLACES, RESULT_FORMAT_DEC
)
from syntax_highlighter import SyntaxHighlighter
from worksheet import Worksheet


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class LineMeta(BaseModel):
    id: int = 0
    result_format: str = RESULT_FORMAT_DEC


class EvaluateRequest(BaseModel):
    text: str
    lines: List[LineMeta] = []
    decimal_places: int = DEFAULT_DECIMAL_PLACES


class LineResultModel(BaseModel):
    text: str = ""
    has_result: bool = False
    is_assignment: bool = False
    int_len: int = 0
    frac_len: int = 0
    unit_len: int = 0
    cells: Optional[List[List[str]]] = None


class VariableModel(BaseModel):
    name: str
    value: str


class EvaluateResponse(BaseModel):
    results: List[LineResultModel]
    variables: List[VariableModel]


class SyntaxHighlightRequest(BaseModel):
    text: str
    line_ids: List[int] = []


class SyntaxHighlightResponse(BaseModel):
    highlights: List[Dict]


class NormalizeRequest(BaseModel):
    text: str
    line_ids: List[int] = []


class NormalizeResponse(BaseModel):
    text: str


# =============================================================================
# FASTAPI APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=f"{APP_NAME} API",
    description="Stateless evaluation backend for the CalcPad editor",
    version=APP_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_worksheet(text, line_meta=(), decimal_places=DEFAULT_DECIMAL_PLACES):
    """
    Fresh worksheet for one request.

    Raises:
        HTTPException: 400 for an unknown result format
    """
    worksheet = Worksheet(text, decimal_places=decimal_places)
    for row, meta in enumerate(line_meta):
        if row >= len(worksheet.lines):
            break
        worksheet.line_data[row].id = meta.id
        try:
            worksheet.set_line_format(row, meta.result_format)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    ids = [data.id for data in worksheet.line_data]
    worksheet.line_id_generator = max(ids, default=0) + 1
    return worksheet


# =============================================================================
# API ENDPOINTS
# =============================================================================

@app.get("/")
@app.head("/")
async def root():
    """Health check endpoint"""
    return {
        "message": f"{APP_NAME} API Server",
        "version": APP_VERSION,
        "status": "running",
        "timestamp": datetime.now().isoformat()
    }


@app.post("/api/evaluate", response_model=EvaluateResponse)
async def evaluate_document(request: EvaluateRequest):
    """
    Evaluate a whole document and return the per-line results.
    """
    if request.decimal_places < 0:
        raise HTTPException(status_code=400, detail="decimal_places must not be negative")

    worksheet = build_worksheet(request.text, request.lines, request.decimal_places)
    pass_result = worksheet.evaluate()

    results = []
    for row, line in enumerate(pass_result.lines):
        results.append(LineResultModel(
            text=line.text,
            has_result=worksheet.has_result(row),
            is_assignment=line.is_assignment,
            int_len=line.lengths.int_len,
            frac_len=line.lengths.frac_len,
            unit_len=line.lengths.unit_len,
            cells=line.cells,
        ))

    variables = [VariableModel(name=name, value=str(value)) for name, value in pass_result.variables]
    return EvaluateResponse(results=results, variables=variables)


@app.post("/api/syntax-highlight", response_model=SyntaxHighlightResponse)
async def get_syntax_highlighting(request: SyntaxHighlightRequest):
    """
    Get syntax highlighting data for a document.
    """
    worksheet = build_worksheet(request.text, [LineMeta(id=i) for i in request.line_ids])
    highlights = SyntaxHighlighter().highlight_text(request.text, worksheet)
    return SyntaxHighlightResponse(highlights=highlights)


@app.post("/api/normalize", response_model=NormalizeResponse)
async def normalize_content(request: NormalizeRequest):
    """
    Rewrite stable id references ("&[id]") into row references for saving.
    """
    worksheet = build_worksheet(request.text, [LineMeta(id=i) for i in request.line_ids])
    return NormalizeResponse(text=worksheet.get_normalized_content())


# =============================================================================
# SERVER STARTUP
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    print(f"Starting {APP_NAME} API Server...")
    print(f"Server will be available at: http://{API_HOST}:{API_PORT}")
    print(f"API documentation at: http://{API_HOST}:{API_PORT}/docs")

    uvicorn.run(
        "api_server:app",
        host=API_HOST,
        port=API_PORT,
        log_level="info"
    )
