"""Database seeder: users, tags, articles and favorites for local development."""
import asyncio
import argparse
import logging
import random
import time
from datetime import datetime, timezone, timedelta
from conduit.config import configure_logging
from conduit.database import engine, async_session, Base
from conduit.models import User, Article, Tag
from conduit.repositories import ArticleRepository

logger = logging.getLogger("conduit.seed")

TAGS = ["python", "fastapi", "postgresql", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing",
        "security", "graphql", "rest-api"]

async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 2000

    logger.info("Seeding: %d users, %d articles", num_users, num_articles)
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        tags = [Tag(name=name) for name in TAGS]
        session.add_all(tags)

        users = [
            User(
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@example.com",
                display_name=f"User {i}",
                bio=f"I am test user number {i}. I write about technology.",
            )
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        logger.info("Created %d tags and %d users", len(tags), len(users))

        repo = ArticleRepository(session)
        total_favorites = 0
        for i in range(num_articles):
            topic = random.choice(TAGS)
            article = Article.create(
                author=random.choice(users),
                title=f"Article {i} on {topic}",
                description=f"Notes on running {topic} in production",
                content=f"This is the full content of article {i}. " * 10,
            )
            # Spread creation times so the newest-first listing is meaningful.
            article.created_at = datetime.now(timezone.utc) - timedelta(
                days=random.randint(0, 365), seconds=i
            )
            for tag in random.sample(tags, k=random.randint(1, 4)):
                article.add_tag(tag)
            for fan in random.sample(users, k=random.randint(0, min(5, num_users))):
                article.favorite(fan)
            total_favorites += article.number_of_likes()
            await repo.save(article)

        await session.commit()

    elapsed = time.perf_counter() - start
    logger.info(
        "Seeding complete in %.1fs: %d articles, %d favorites",
        elapsed, num_articles, total_favorites,
    )


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
