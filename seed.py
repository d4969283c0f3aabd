"""
Startup seed: indexes plus demo catalog data.

Each collection is only filled when it is empty, so running this twice is
harmless. Run directly with ``python seed.py``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict

from pydantic import BaseModel
from pymongo.database import Database

from database import create_document, ensure_indexes, get_db
from schemas import BlogPost, DiscountCode, Ebook, Product, Testimonial

logger = logging.getLogger(__name__)


def _dt(year: int, month: int, day: int, end_of_day: bool = False) -> datetime:
    if end_of_day:
        return datetime(year, month, day, 23, 59, 59, tzinfo=timezone.utc)
    return datetime(year, month, day, tzinfo=timezone.utc)


PRODUCTS = [
    Product(
        id="bpc-157",
        name="BPC-157",
        category="recovery",
        description="Body Protection Compound peptide studied for tissue repair.",
        price=850000,
        original_price=1000000,
        dosage="5mg",
        purity="99%",
        featured=True,
        image="/images/products/bpc-157.jpg",
        benefits=["Tendon and ligament support", "Gut lining support", "Faster recovery"],
        usage="Reconstitute with bacteriostatic water. For research use only.",
        tags=["recovery", "healing", "best-seller"],
    ),
    Product(
        id="tb-500",
        name="TB-500",
        category="recovery",
        description="Thymosin Beta-4 fragment researched for muscle and soft tissue repair.",
        price=950000,
        original_price=1100000,
        dosage="5mg",
        purity="99%",
        featured=True,
        image="/images/products/tb-500.jpg",
        benefits=["Muscle repair", "Flexibility", "Reduced inflammation"],
        usage="Reconstitute with bacteriostatic water. For research use only.",
        tags=["recovery", "muscle"],
    ),
    Product(
        id="ipamorelin",
        name="Ipamorelin",
        category="growth",
        description="Selective growth hormone secretagogue.",
        price=750000,
        dosage="5mg",
        purity="98%",
        image="/images/products/ipamorelin.jpg",
        benefits=["Lean muscle", "Sleep quality", "Recovery"],
        usage="For research use only.",
        tags=["growth", "sleep"],
    ),
    Product(
        id="cjc-1295",
        name="CJC-1295",
        category="growth",
        description="GHRH analogue often paired with Ipamorelin.",
        price=800000,
        dosage="2mg",
        purity="98%",
        image="/images/products/cjc-1295.jpg",
        benefits=["Growth hormone release", "Fat metabolism"],
        usage="For research use only.",
        tags=["growth", "stack"],
    ),
    Product(
        id="semaglutide",
        name="Semaglutide",
        category="weight-loss",
        description="GLP-1 receptor agonist researched for appetite regulation.",
        price=1500000,
        original_price=1800000,
        dosage="5mg",
        purity="99%",
        featured=True,
        image="/images/products/semaglutide.jpg",
        benefits=["Appetite control", "Blood sugar support"],
        usage="For research use only.",
        tags=["weight-loss", "glp-1", "best-seller"],
    ),
    Product(
        id="ghk-cu",
        name="GHK-Cu",
        category="skin",
        description="Copper peptide studied for skin and hair regeneration.",
        price=650000,
        dosage="50mg",
        purity="99%",
        in_stock=False,
        image="/images/products/ghk-cu.jpg",
        benefits=["Collagen support", "Skin elasticity", "Hair growth"],
        usage="For research use only.",
        tags=["skin", "anti-aging"],
    ),
    Product(
        id="bacteriostatic-water",
        name="Bacteriostatic Water",
        category="supplies",
        description="Sterile water with 0.9% benzyl alcohol for reconstitution.",
        price=100000,
        image="/images/products/bac-water.jpg",
        benefits=["Multi-dose reconstitution"],
        usage="Use with sterile technique.",
        tags=["supplies"],
    ),
]

DISCOUNT_CODES = [
    DiscountCode(
        code="WELCOME10",
        discount=10,
        type="percentage",
        max_uses=1000,
        valid_until=_dt(2030, 12, 31, end_of_day=True),
        description="10% off your first order",
    ),
    DiscountCode(
        code="JOESTAR50K",
        discount=50000,
        type="fixed",
        max_uses=500,
        valid_until=_dt(2030, 12, 31, end_of_day=True),
        description="Rp 50.000 off any order",
    ),
    DiscountCode(
        code="FLASH25",
        discount=25,
        type="percentage",
        max_uses=3,
        valid_until=_dt(2030, 6, 30, end_of_day=True),
        description="Flash sale, limited uses",
    ),
    DiscountCode(
        code="NEWYEAR2024",
        discount=20,
        type="percentage",
        max_uses=1000,
        valid_until=_dt(2024, 1, 31, end_of_day=True),
        description="New year promotion",
    ),
    DiscountCode(
        code="RETIRED15",
        discount=15,
        type="percentage",
        active=False,
        description="Discontinued code",
    ),
]

TESTIMONIALS = [
    Testimonial(
        name="Andi S.",
        location="Jakarta",
        rating=5,
        text="Fast shipping and the lab report matched the batch number.",
        product="BPC-157",
        date=_dt(2024, 3, 12),
    ),
    Testimonial(
        name="Rina W.",
        location="Surabaya",
        rating=5,
        text="Consistent quality every order. Support answered within an hour.",
        product="Semaglutide",
        date=_dt(2024, 4, 2),
    ),
    Testimonial(
        name="Budi H.",
        rating=4,
        text="Good packaging, cold chain kept intact.",
        product="TB-500",
        date=_dt(2024, 5, 20),
    ),
]

EBOOKS = [
    Ebook(
        id="peptide-basics",
        title="Peptide Research Basics",
        description="Reconstitution, storage and handling for beginners.",
        pages=42,
        download_url="/ebooks/peptide-basics.pdf",
        preview_url="/ebooks/previews/peptide-basics.pdf",
        thumbnail="/images/ebooks/peptide-basics.jpg",
        category="guide",
        tags=["beginner", "handling"],
        featured=True,
    ),
    Ebook(
        id="recovery-stacks",
        title="Recovery Stacks Explained",
        description="An overview of BPC-157 and TB-500 research.",
        pages=58,
        download_url="/ebooks/recovery-stacks.pdf",
        thumbnail="/images/ebooks/recovery-stacks.jpg",
        category="research",
        tags=["recovery"],
    ),
    Ebook(
        id="glp1-guide",
        title="GLP-1 Research Guide",
        description="Mechanisms and published findings on GLP-1 agonists.",
        pages=36,
        language="English",
        download_url="/ebooks/glp1-guide.pdf",
        thumbnail="/images/ebooks/glp1-guide.jpg",
        category="research",
        tags=["weight-loss", "glp-1"],
    ),
]

BLOG_POSTS = [
    BlogPost(
        id="how-to-reconstitute-peptides",
        title="How to Reconstitute Peptides",
        excerpt="A step by step guide to mixing lyophilized peptides.",
        content="Start with a clean surface and sterile bacteriostatic water...",
        category="guides",
        featured=True,
        published_at=_dt(2024, 2, 1),
        tags=["guide", "handling"],
    ),
    BlogPost(
        id="storing-peptides",
        title="Storing Peptides the Right Way",
        excerpt="Temperature, light and shelf life.",
        content="Lyophilized peptides are stable at room temperature for weeks...",
        category="guides",
        published_at=_dt(2024, 3, 15),
        tags=["storage"],
    ),
    BlogPost(
        id="bpc-157-research-roundup",
        title="BPC-157 Research Roundup",
        excerpt="What recent studies say about BPC-157.",
        content="Several animal studies have examined...",
        category="research",
        featured=True,
        published_at=_dt(2024, 5, 10),
        tags=["bpc-157", "research"],
    ),
    BlogPost(
        id="understanding-purity-reports",
        title="Understanding Purity Reports",
        excerpt="Reading HPLC and mass spec certificates.",
        content="Every batch ships with a certificate of analysis...",
        category="quality",
        published_at=_dt(2024, 6, 1),
        tags=["quality", "lab"],
    ),
]

SEED_DATA: Dict[str, list] = {
    "product": PRODUCTS,
    "discountcode": DISCOUNT_CODES,
    "testimonial": TESTIMONIALS,
    "ebook": EBOOKS,
    "blogpost": BLOG_POSTS,
}


def seed_collection(db: Database, collection_name: str, records: list[BaseModel]) -> int:
    if db[collection_name].count_documents({}) > 0:
        return 0
    for record in records:
        create_document(db, collection_name, record)
    return len(records)


def seed_database(db: Database) -> Dict[str, int]:
    ensure_indexes(db)
    counts = {name: seed_collection(db, name, records) for name, records in SEED_DATA.items()}
    seeded = {name: count for name, count in counts.items() if count}
    if seeded:
        logger.info("Seeded %s", seeded)
    else:
        logger.info("Database already seeded")
    return counts


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    seed_database(get_db())
