"""FastAPI application for the blog reader."""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from common.cache import TTLCache
from common.config import settings
from common.logging_config import setup_service_logging
from common.schemas import BlogDetail, HealthResponse, Member
from common.utils import LanguageUtils
from reader.helpers import (
    filter_members,
    format_sse_event,
    group_members_by_generation,
    scraper_error_status,
    translation_cache_key,
)
from reader.proxy import CORS_HEADERS, ProxyError, fetch_target, success_headers, validate_target_url
from reader.schemas import (
    BlogListResponse,
    MemberListResponse,
    TranslateRequest,
    TranslateResponse,
)
from scraper.blog_service import BlogService
from scraper.errors import ScraperError
from scraper.member_loader import MemberLoader
from translator.error_handler import describe_translation_error
from translator.pipeline import TranslationPipeline
from translator.translation_service import GeminiBackend, TranslationClient

# Configure logging
logger = setup_service_logging("reader", enable_file_logging=True)

MEMBER_LIST_CACHE_KEY = "active"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared HTTP client and services, and close them on shutdown."""
    logger.info("🚀 Starting blog reader API...")
    http_client = httpx.AsyncClient(follow_redirects=True)
    blog_service = BlogService(http_client)

    app.state.http_client = http_client
    app.state.blog_service = blog_service
    app.state.member_loader = MemberLoader.from_service(blog_service, http_client)
    app.state.member_list_cache = TTLCache(
        capacity=1, ttl_seconds=settings.member_cache_ttl_seconds, name="member-list"
    )
    app.state.pipeline = TranslationPipeline(TranslationClient(GeminiBackend()))
    app.state.translation_cache = TTLCache(
        capacity=settings.translation_cache_capacity,
        ttl_seconds=settings.translation_cache_ttl_seconds,
        name="translation",
    )
    logger.info("✅ API startup complete")

    yield

    logger.info("Shutting down blog reader API...")
    await http_client.aclose()


app = FastAPI(
    title="Blog Reader API",
    description="Member blogs with on-demand chunked translation",
    version="1.0.0",
    lifespan=lifespan,
)

allowed_origins = settings.get_cors_allowed_origins() or ["http://localhost:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_blog_service(request: Request) -> BlogService:
    return request.app.state.blog_service


def get_member_loader(request: Request) -> MemberLoader:
    return request.app.state.member_loader


def get_member_list_cache(request: Request) -> TTLCache:
    return request.app.state.member_list_cache


def get_pipeline(request: Request) -> TranslationPipeline:
    return request.app.state.pipeline


def get_translation_cache(request: Request) -> TTLCache:
    return request.app.state.translation_cache


async def load_blog_detail(blog_id: str, service: BlogService) -> BlogDetail:
    """Fetch a blog post, turning site failures into HTTP errors."""
    try:
        return await service.get_blog_detail(blog_id)
    except ScraperError as e:
        logger.error(f"❌ Failed to load blog {blog_id}: {e}")
        code = scraper_error_status(e)
        raise HTTPException(
            status_code=code,
            detail="Blog post not found" if code == 404 else "Failed to load blog post",
        )


def translation_http_error(error: Exception, language: str) -> HTTPException:
    report = describe_translation_error(error, language)
    return HTTPException(
        status_code=report.status_code,
        detail={"error": report.error_type, "message": report.message},
    )


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Blog Reader API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse()


@app.options("/api/proxy")
async def proxy_preflight():
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@app.get("/api/proxy")
async def proxy_endpoint(
    url: Optional[str] = Query(None, description="Absolute URL on the blog site"),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Fetch a blog site page on behalf of a browser.

    Only URLs under the allowed prefixes are fetched. Error replies carry the
    same CORS headers so the browser can read them.
    """
    try:
        target_url = validate_target_url(url, settings.get_proxy_allowed_prefixes())
        body = await fetch_target(client, target_url, settings.proxy_timeout)
    except ProxyError as e:
        return JSONResponse(
            status_code=e.status_code, content=e.to_content(), headers=CORS_HEADERS
        )

    return Response(
        content=body,
        media_type="text/html; charset=utf-8",
        headers=success_headers(settings.proxy_cache_max_age),
    )


@app.get("/members", response_model=MemberListResponse)
async def list_members(
    gen: Optional[str] = Query(None, description="Generation label, e.g. '5期生'"),
    keyword: Optional[str] = Query(None, description="Name, romanized name or kana"),
    service: BlogService = Depends(get_blog_service),
    cache: TTLCache = Depends(get_member_list_cache),
):
    """List active members grouped by generation."""
    try:
        members = await cache.get_or_load(MEMBER_LIST_CACHE_KEY, service.fetch_members)
    except ScraperError as e:
        logger.error(f"❌ Failed to load member list: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load member list"
        )

    filtered = filter_members(members or [], generation=gen, keyword=keyword)
    return MemberListResponse(
        total=len(filtered), groups=group_members_by_generation(filtered)
    )


@app.get("/members/{member_code}", response_model=Member)
async def get_member(
    member_code: str,
    name: Optional[str] = Query(None, description="Member name for the name lookup"),
    loader: MemberLoader = Depends(get_member_loader),
):
    member = await loader.load_member(member_code, name)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Member not found"
        )
    return member


@app.get("/members/{member_code}/debug", response_model=Dict[str, Any])
async def get_member_debug_info(
    member_code: str, loader: MemberLoader = Depends(get_member_loader)
):
    """Show cache and failed-load state of a member lookup."""
    return loader.debug_info(member_code)


@app.post("/members/{member_code}/retry", response_model=Member)
async def retry_member(
    member_code: str,
    name: Optional[str] = Query(None),
    loader: MemberLoader = Depends(get_member_loader),
):
    """Forget previous failures for a member and load it again."""
    member = await loader.force_retry(member_code, name)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Member not found"
        )
    return member


@app.get("/members/{member_code}/blogs", response_model=BlogListResponse)
async def list_member_blogs(
    member_code: str,
    service: BlogService = Depends(get_blog_service),
    loader: MemberLoader = Depends(get_member_loader),
):
    """List every blog post of a member, newest first as the site orders them."""
    member = await loader.load_member(member_code, record_failure=False)
    try:
        blogs = await service.fetch_all_blogs(
            member_code, author=member.name if member else ""
        )
    except ScraperError as e:
        logger.error(f"❌ Failed to load blogs of member {member_code}: {e}")
        raise HTTPException(
            status_code=scraper_error_status(e), detail="Failed to load blog list"
        )

    return BlogListResponse(
        member_code=member_code, member=member, total=len(blogs), blogs=blogs
    )


@app.get("/blogs/{blog_id}", response_model=BlogDetail)
async def get_blog(blog_id: str, service: BlogService = Depends(get_blog_service)):
    return await load_blog_detail(blog_id, service)


@app.post("/blogs/{blog_id}/translate", response_model=TranslateResponse)
async def translate_blog(
    blog_id: str,
    request: TranslateRequest,
    service: BlogService = Depends(get_blog_service),
    pipeline: TranslationPipeline = Depends(get_pipeline),
    cache: TTLCache = Depends(get_translation_cache),
):
    """
    Translate a blog post's title and content.

    Results are cached per post and target language.
    """
    key = translation_cache_key(blog_id, request.target_language)
    cached = cache.get(key)
    if cached is not None:
        logger.info(f"Translation cache hit for blog {blog_id} ({request.target_language})")
        return cached.model_copy(update={"cached": True})

    detail = await load_blog_detail(blog_id, service)
    source = LanguageUtils.iso_to_language_name(LanguageUtils.SOURCE_LANGUAGE)
    target = LanguageUtils.iso_to_language_name(request.target_language)

    try:
        title = await pipeline.client.translate_title(detail.title, source, target)
        content = await pipeline.translate(detail.content, source, target)
    except Exception as e:
        raise translation_http_error(e, request.target_language)

    response = TranslateResponse(
        blog_id=blog_id,
        target_language=request.target_language,
        title=title,
        content=content,
    )
    cache.set(key, response)
    logger.info(f"✅ Translated blog {blog_id} to {target}")
    return response


async def stream_translation_events(
    pipeline: TranslationPipeline,
    detail: BlogDetail,
    target_language: str,
) -> AsyncIterator[str]:
    """
    Run the pipeline and yield one SSE event per translated chunk.

    Chunks arrive in their original order. The stream ends with ``[DONE]``, or
    with an ``error`` event if the pipeline fails.
    """
    queue: "asyncio.Queue[Tuple[str, Any]]" = asyncio.Queue()
    chunk_count = 0

    def on_progress(text: str, is_last: bool) -> None:
        nonlocal chunk_count
        queue.put_nowait(("chunk", {"index": chunk_count, "text": text, "is_last": is_last}))
        chunk_count += 1

    async def run_pipeline() -> None:
        source = LanguageUtils.iso_to_language_name(LanguageUtils.SOURCE_LANGUAGE)
        target = LanguageUtils.iso_to_language_name(target_language)
        try:
            await pipeline.translate(detail.content, source, target, on_progress)
        except Exception as e:
            queue.put_nowait(("error", e))
        else:
            queue.put_nowait(("done", None))

    task = asyncio.create_task(run_pipeline())
    try:
        while True:
            kind, payload = await queue.get()
            if kind == "chunk":
                yield format_sse_event(json.dumps(payload, ensure_ascii=False))
            elif kind == "done":
                yield format_sse_event("[DONE]")
                break
            else:
                report = describe_translation_error(payload, target_language)
                yield format_sse_event(
                    json.dumps(
                        {
                            "error": report.error_type,
                            "message": report.message,
                            "status_code": report.status_code,
                        },
                        ensure_ascii=False,
                    ),
                    event="error",
                )
                break
    finally:
        if not task.done():
            task.cancel()


@app.get("/blogs/{blog_id}/translate/stream")
async def stream_blog_translation(
    blog_id: str,
    target_language: str = Query(..., description="ISO 639-1 code: 'en' or 'vi'"),
    service: BlogService = Depends(get_blog_service),
    pipeline: TranslationPipeline = Depends(get_pipeline),
):
    """Translate a blog post's content and stream chunks as Server-Sent Events."""
    target_language = target_language.strip().lower()
    if not LanguageUtils.is_translation_target(target_language):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported target language: {target_language!r}",
        )

    detail = await load_blog_detail(blog_id, service)
    return StreamingResponse(
        stream_translation_events(pipeline, detail, target_language),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("reader.main:app", host=settings.api_host, port=settings.api_port, reload=True)
