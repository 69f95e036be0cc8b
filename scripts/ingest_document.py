"""
Ingest one stored object into the vector index and run a test search.

Usage:
    python scripts/ingest_document.py <bucket> <key> [--public] [--category CATEGORY] [--query QUERY]
"""
import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add parent directory to path so bzr_portal imports resolve
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bzr_portal.core.exceptions import IngestionError
from bzr_portal.services.ingestion import IngestMetadata, IngestionService
from bzr_portal.services.vector_store import SearchFilters


async def ingest_document(args) -> bool:
    from bzr_portal.core.config import settings
    print(f"📡 Database: {settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}")
    print(f"Ingesting s3://{args.bucket}/{args.key}")

    service = IngestionService()

    async def report(progress: int):
        print(f"   progress: {progress}%")

    try:
        document_id = await service.ingest_one(
            args.bucket,
            args.key,
            IngestMetadata(is_public=args.public, category=args.category),
            progress=report,
        )
    except IngestionError as e:
        print(f"\n❌ Failed at stage '{e.stage}': {e.cause}")
        return False

    print(f"✅ Indexed as {document_id}")

    if args.query:
        print(f"\n🔍 Searching: {args.query}")
        results = await service.index.search(
            args.query,
            filters=SearchFilters(include_public=True),
            limit=3,
            similarity_threshold=0.0,
        )
        for i, record in enumerate(results, 1):
            print(f"   {i}. {record.metadata.get('filename')} (similarity: {record.similarity:.3f})")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest a stored document")
    parser.add_argument("bucket")
    parser.add_argument("key")
    parser.add_argument("--public", action="store_true")
    parser.add_argument("--category")
    parser.add_argument("--query")

    success = asyncio.run(ingest_document(parser.parse_args()))
    if not success:
        sys.exit(1)
