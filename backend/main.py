"""Main entry point for the PDF question answering API."""
import json
import logging
from typing import List, Optional

import tiktoken
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from config import (
    PORT,
    LOG_LEVEL,
    LOG_FORMAT,
    CORS_ORIGINS,
    DOCUMENT_PATH,
    MAX_FILE_SIZE_MB,
    GROQ_API_KEY,
    LLM_ENABLED,
    TOKEN_ENCODING,
)
from logger import setup_logging
from models.api import (
    QueryRequest,
    QueryResponse,
    SearchRequest,
    SearchResponse,
    Source,
    DocumentResponse,
    StatsResponse,
    TermScore,
    TopTermsResponse,
    ChunkMatch,
    ChunkMatchResponse,
)
from models.chunk import SearchResult
from models.document import DocumentInfo, ExtractedDocument
from services.answer_composer import AnswerComposer
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader, DocumentLoadError, is_valid_pdf_file
from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore, NotInitializedError

logger = logging.getLogger(__name__)

NO_DOCUMENT_DETAIL = "No document loaded. Upload a PDF to /documents first."

# Initialize FastAPI app
app = FastAPI(
    title="PDF Question Answering",
    description="Ask questions about a PDF using TF-IDF retrieval and an optional LLM",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Services; the document-specific ones are replaced whenever a new PDF is loaded
document_loader = DocumentLoader()
chunking_engine = ChunkingEngine()
llm_client: Optional[LLMClient] = None
token_encoder = None
vector_store = VectorStore()
retrieval_engine = RetrievalEngine(vector_store)
answer_composer = AnswerComposer(retrieval_engine)
document_info: Optional[DocumentInfo] = None


def _build_composer(engine: RetrievalEngine) -> AnswerComposer:
    return AnswerComposer(engine, llm_client=llm_client, token_encoder=token_encoder)


def load_document(extracted: ExtractedDocument, title: Optional[str] = None) -> DocumentInfo:
    """
    Chunk and index a document, replacing the current one.

    Args:
        extracted: Text and page breaks from the document loader
        title: Display title, defaults to the PDF title

    Returns:
        DocumentInfo summary of the new document
    """
    global vector_store, retrieval_engine, answer_composer, document_info

    chunks = chunking_engine.chunk_text(extracted.text, extracted.page_breaks)
    new_store = VectorStore.from_chunks(chunks)
    new_engine = RetrievalEngine(new_store)

    info = DocumentInfo(
        title=title or extracted.title or "document.pdf",
        page_count=extracted.page_count,
        chunk_count=len(chunks),
        average_chunk_size=new_store.get_stats()["average_chunk_length"],
        total_words=sum(len(chunk.text.split()) for chunk in chunks),
    )

    # Swap the whole set at once so queries never mix two documents
    vector_store = new_store
    retrieval_engine = new_engine
    answer_composer = _build_composer(new_engine)
    document_info = info

    logger.info(f"Document processed: {info.chunk_count} chunks created for {info.title}")
    return info


def _to_source(result: SearchResult, include_text: bool = False) -> Source:
    return Source(
        chunk_id=result.chunk.id,
        page_number=result.chunk.page_number,
        similarity=result.similarity,
        relevant_sentences=result.relevant_sentences,
        text=result.chunk.text if include_text else None,
    )


def _to_document_response(info: DocumentInfo) -> DocumentResponse:
    return DocumentResponse(
        title=info.title,
        page_count=info.page_count,
        chunk_count=info.chunk_count,
        average_chunk_size=info.average_chunk_size,
        total_words=info.total_words,
    )


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global llm_client, token_encoder, answer_composer

    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing PDF question answering services...")

    if LLM_ENABLED and GROQ_API_KEY:
        llm_client = LLMClient()
    else:
        logger.info("LLM disabled or GROQ_API_KEY not set; answers will be extractive")

    try:
        token_encoder = tiktoken.get_encoding(TOKEN_ENCODING)
        logger.info(f"Initialized tiktoken encoder ({TOKEN_ENCODING})")
    except Exception as e:
        logger.warning(f"Could not load tiktoken encoding, prompts will not be trimmed: {e}")

    answer_composer = _build_composer(retrieval_engine)

    if DOCUMENT_PATH:
        try:
            extracted = await run_in_threadpool(document_loader.load, DOCUMENT_PATH)
            await run_in_threadpool(load_document, extracted)
        except DocumentLoadError as e:
            logger.error(f"Failed to load document from {DOCUMENT_PATH}: {e}")

    logger.info("All services initialized successfully")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "PDF Question Answering API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "pdf-question-answering",
        "version": "1.0.0",
        "document_loaded": vector_store.is_initialized,
        "llm_enabled": llm_client is not None,
    }


@app.post("/documents", response_model=DocumentResponse)
async def upload_document(file: UploadFile = File(...)) -> DocumentResponse:
    """
    Upload a PDF, extract its text and build the index.

    Replaces any previously loaded document.
    """
    data = await file.read()
    filename = file.filename or "document.pdf"

    if len(data) > MAX_FILE_SIZE_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File exceeds {MAX_FILE_SIZE_MB} MB limit")

    if not is_valid_pdf_file(filename, data):
        raise HTTPException(status_code=400, detail="Please upload a valid PDF file")

    try:
        extracted = await run_in_threadpool(document_loader.load_bytes, data, filename)
        info = await run_in_threadpool(load_document, extracted, extracted.title or filename)
    except DocumentLoadError as e:
        logger.warning(f"Rejected upload {filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error loading {filename}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    return _to_document_response(info)


@app.get("/documents/current", response_model=DocumentResponse)
async def current_document() -> DocumentResponse:
    """Summary of the loaded document."""
    if document_info is None:
        raise HTTPException(status_code=404, detail=NO_DOCUMENT_DETAIL)
    return _to_document_response(document_info)


@app.post("/query", response_model=QueryResponse)
async def query_endpoint(request: QueryRequest) -> QueryResponse:
    """
    Answer a question about the loaded document.

    Retrieves relevant chunks, applies relevance thresholds and composes an
    answer with the LLM when configured, otherwise from extracted sentences.
    """
    logger.info(f"Processing query: {request.question[:100]}...")

    try:
        answer = await answer_composer.compose(request.question)
    except NotInitializedError:
        raise HTTPException(status_code=409, detail=NO_DOCUMENT_DETAIL)
    except Exception as e:
        logger.error(f"Unexpected error processing query: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    return QueryResponse(
        answer=answer.text,
        status=answer.status,
        is_llm_generated=answer.is_llm_generated,
        processing_time_ms=answer.processing_time_ms,
        sources=[_to_source(result) for result in answer.sources],
    )


@app.post("/query/stream")
async def query_stream_endpoint(request: QueryRequest):
    """
    Streaming variant of /query as Server-Sent Events.

    - data: {"type": "token", "content": "..."} for each token
    - data: {"type": "metadata", "data": {...}} with sources at the end
    """
    if not vector_store.is_initialized:
        raise HTTPException(status_code=409, detail=NO_DOCUMENT_DETAIL)

    composer = answer_composer

    async def generate_stream():
        try:
            async for event in composer.stream(request.question):
                if event["type"] == "metadata":
                    data = dict(event["data"])
                    data["sources"] = [_to_source(r).model_dump() for r in data["sources"]]
                    event = {"type": "metadata", "data": data}
                yield f"data: {json.dumps(event)}\n\n".encode("utf-8")
        except Exception as e:
            logger.error(f"Unexpected error during streaming: {e}", exc_info=True)
            error_data = {
                "type": "error",
                "error": {"code": "UNKNOWN_ERROR", "message": f"Internal server error: {str(e)}"},
            }
            yield f"data: {json.dumps(error_data)}\n\n".encode("utf-8")

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.post("/search", response_model=SearchResponse)
async def search_endpoint(request: SearchRequest) -> SearchResponse:
    """Ranked chunks for a query, without relevance thresholds."""
    try:
        results = vector_store.search(request.query, top_k=request.top_k)
    except NotInitializedError:
        raise HTTPException(status_code=409, detail=NO_DOCUMENT_DETAIL)

    return SearchResponse(
        query=request.query,
        results=[_to_source(result, include_text=True) for result in results],
    )


@app.get("/stats", response_model=StatsResponse)
async def stats_endpoint() -> StatsResponse:
    """Index statistics; available before a document is loaded."""
    return StatsResponse(
        **vector_store.get_stats(),
        document_title=document_info.title if document_info else None,
    )


@app.get("/top-terms", response_model=TopTermsResponse)
async def top_terms_endpoint(limit: int = Query(20, ge=1, le=200)) -> TopTermsResponse:
    """Most important terms of the loaded document."""
    try:
        terms = vector_store.get_top_terms(limit)
    except NotInitializedError:
        raise HTTPException(status_code=409, detail=NO_DOCUMENT_DETAIL)

    return TopTermsResponse(terms=[TermScore(term=term, score=score) for term, score in terms])


@app.get("/chunks", response_model=ChunkMatchResponse)
async def chunks_endpoint(terms: List[str] = Query(...)) -> ChunkMatchResponse:
    """Chunks whose text contains any of the given terms."""
    try:
        chunks = vector_store.find_chunks_with_terms(terms)
    except NotInitializedError:
        raise HTTPException(status_code=409, detail=NO_DOCUMENT_DETAIL)

    return ChunkMatchResponse(
        terms=terms,
        chunks=[
            ChunkMatch(chunk_id=chunk.id, page_number=chunk.page_number, text=chunk.text)
            for chunk in chunks
        ],
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting PDF Question Answering API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
