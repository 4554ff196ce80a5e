"""Services for the PDF question answering service."""
from .text_processing import TermAnalysis, analyze_terms, extract_terms, extract_key_sentences
from .chunking_engine import ChunkingEngine, ChunkConfig
from .tfidf_index import IndexSnapshot, build_index
from .vector_store import VectorStore, NotInitializedError, cosine_similarity
from .retrieval_engine import RetrievalEngine, RetrievalOutcome
from .document_loader import DocumentLoader, DocumentLoadError
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .answer_composer import AnswerComposer, Answer

__all__ = [
    'TermAnalysis', 'analyze_terms', 'extract_terms', 'extract_key_sentences',
    'ChunkingEngine', 'ChunkConfig', 'IndexSnapshot', 'build_index',
    'VectorStore', 'NotInitializedError', 'cosine_similarity',
    'RetrievalEngine', 'RetrievalOutcome', 'DocumentLoader', 'DocumentLoadError',
    'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'AnswerComposer', 'Answer',
]
