"""Lexical reindex entry point.

Recomputes the lexical vectors of all stored chunks after a tokenizer change,
without calling the embedding provider.

Usage:
    python -m services.agent_ingestion.reindex_runner [agent_id]
"""

import asyncio
import sys

from services.agent_ingestion.IngestionService import IngestionService
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.helper.settings_loader import load_agent_settings
from shared.logging.logging_setup import setup_logging


async def main(agent_id: str | None = None) -> int:
    """Run the lexical reindex. Returns a process exit code."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    settings = load_agent_settings(config)

    rag_client = RAGClientManager(helper_config=config).get_client()

    try:
        try:
            await rag_client.boot()
            await rag_client.do_healthcheck()
        except Exception as e:
            logger.error(f"Error booting RAG client {rag_client.get_engine_name()}: {e}. Aborting.")
            return 1

        if not await rag_client.do_existence_check():
            logger.warning("RAG collection does not exist yet. Nothing to reindex.")
            return 0

        service = IngestionService(
            helper_config=config,
            rag_client=rag_client,
            settings=settings.chunking,
        )
        result = await service.do_reindex_lexical(agent_id=agent_id)
        logger.info(f"Reindex finished: {result.updated} updated, {result.skipped} skipped.")
        return 0
    finally:
        await rag_client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))
