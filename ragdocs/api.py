"""FastAPI backend for the documentation queue."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .commands import CommandResult, Commands, build_context
from .config import Settings
from .models import (
    AddLocalRequest,
    AddUrlRequest,
    CheckFilesRequest,
    EnqueueRequest,
    ExtractUrlsRequest,
    RemoveDocumentationRequest,
    RemoveFromQueueRequest,
    RunQueueRequest,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Cache the wired collaborators
_commands: Optional[Commands] = None
_prepared = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _commands is not None:
        await _commands.context.close()


app = FastAPI(
    title="RAG Docs Queue API",
    description="API for queueing, ingesting and managing documentation sources",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def get_commands() -> Commands:
    """Get or create the command surface."""
    global _commands, _prepared
    if _commands is None:
        _commands = Commands(build_context(Settings.from_env()))
    if not _prepared:
        await _commands.context.prepare()
        _prepared = True
    return _commands


def respond(result: CommandResult) -> dict:
    """Return a successful result or raise it as an HTTP error."""
    if result.is_error:
        status_code = 500 if result.code == "internal_error" else 400
        raise HTTPException(status_code=status_code, detail=result.text)
    return result.model_dump()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "RAG Docs Queue API",
        "version": "0.1.0",
        "endpoints": {
            "queue": "/api/queue",
            "run": "/api/queue/run",
            "sources": "/api/sources",
            "documents": "/api/documents",
            "search": "/api/search?query=<text>",
            "discover": "/api/discover/urls, /api/discover/files",
        }
    }


@app.get("/api/queue")
async def list_queue(commands: Commands = Depends(get_commands)):
    """List the pending queue."""
    return respond(await commands.list_queue())


@app.post("/api/queue")
async def enqueue(request: EnqueueRequest, commands: Commands = Depends(get_commands)):
    """Append URLs or paths to the queue."""
    result = await commands.enqueue(request.items)
    if not result.is_error:
        logger.info(f"Enqueued {result.data['added']} item(s) via API")
    return respond(result)


@app.delete("/api/queue")
async def clear_queue(commands: Commands = Depends(get_commands)):
    return respond(await commands.clear_queue())


@app.post("/api/queue/remove")
async def remove_from_queue(request: RemoveFromQueueRequest, commands: Commands = Depends(get_commands)):
    """Remove exact entries from the queue."""
    return respond(await commands.remove_from_queue(request.paths))


@app.post("/api/queue/run")
async def run_queue(request: RunQueueRequest, commands: Commands = Depends(get_commands)):
    """Process the queue and return the run summary.

    Args:
        request: max_concurrent (1-5), retry_attempts (0-5),
            retry_delay in ms (1000-10000), failure_policy (drop or requeue)
    """
    return respond(await commands.run_queue(
        max_concurrent=request.max_concurrent,
        retry_attempts=request.retry_attempts,
        retry_delay=request.retry_delay,
        failure_policy=request.failure_policy,
    ))


@app.get("/api/sources")
async def list_sources(expanded: bool = False, commands: Commands = Depends(get_commands)):
    """List stored documentation sources."""
    return respond(await commands.list_sources(expanded=expanded))


@app.post("/api/documents/url")
async def add_documentation(request: AddUrlRequest, commands: Commands = Depends(get_commands)):
    return respond(await commands.add_documentation(request.url))


@app.post("/api/documents/local")
async def add_local_documentation(request: AddLocalRequest, commands: Commands = Depends(get_commands)):
    return respond(await commands.add_local_documentation(request.path))


@app.post("/api/documents/remove")
async def remove_documentation(request: RemoveDocumentationRequest, commands: Commands = Depends(get_commands)):
    """Remove stored documents by path or URL."""
    return respond(await commands.remove_documentation(paths=request.paths, urls=request.urls))


@app.delete("/api/documents")
async def wipe_database(commands: Commands = Depends(get_commands)):
    """Drop every stored document and recreate the collection."""
    return respond(await commands.wipe_database())


@app.get("/api/search")
async def search_documentation(query: str, limit: int = 5, commands: Commands = Depends(get_commands)):
    return respond(await commands.search_documentation(query, limit=limit))


@app.post("/api/discover/urls")
async def extract_urls(request: ExtractUrlsRequest, commands: Commands = Depends(get_commands)):
    """Extract documentation links from a page, optionally enqueuing them."""
    return respond(await commands.extract_urls(request.url, add_to_queue=request.add_to_queue))


@app.post("/api/discover/files")
async def check_files(request: CheckFilesRequest, commands: Commands = Depends(get_commands)):
    """List files under a path, optionally enqueuing them."""
    return respond(await commands.check_files(request.path, add_to_queue=request.add_to_queue))


def main():
    """Run the API server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
