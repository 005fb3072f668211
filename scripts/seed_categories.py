"""
Seed the default blog categories and tags.
Usage: python scripts/seed_categories.py

Existing slugs are left untouched, so the script can be re-run safely.
"""
from sqlmodel import Session, select
from app.db import engine, create_db_and_tables
from app.models import Category, Tag

CATEGORIES = [
    ("Francisco Arrighi", "francisco-arrighi", "Artigos e análises de Francisco Arrighi"),
    ("Atualizações Tributárias", "atualizacoes-tributarias", "Novidades e mudanças na legislação tributária"),
    ("Imposto de Renda", "imposto-renda", "Declaração, deduções e planejamento do IR"),
    ("Reforma Tributária", "reforma-tributaria", "Acompanhamento da reforma tributária"),
    ("Tributário", "tributario", "Temas gerais de direito tributário"),
    ("Fiscal", "fiscal", "Obrigações fiscais e acessórias"),
    ("Contábil", "contabil", "Contabilidade empresarial"),
    ("Legislação", "legislacao", "Leis, normas e regulamentos"),
    ("Planejamento Tributário", "planejamento", "Estratégias de planejamento tributário"),
    ("Compliance", "compliance", "Conformidade e governança"),
]

TAGS = [
    ("ICMS", "icms"),
    ("ISS", "iss"),
    ("PIS/COFINS", "pis-cofins"),
    ("Lucro Presumido", "lucro-presumido"),
    ("Lucro Real", "lucro-real"),
    ("Simples Nacional", "simples-nacional"),
    ("MEI", "mei"),
    ("Imposto de Renda", "imposto-renda"),
]


def seed():
    create_db_and_tables()
    created = 0
    with Session(engine) as session:
        for name, slug, description in CATEGORIES:
            if not session.exec(select(Category).where(Category.slug == slug)).first():
                session.add(Category(name=name, slug=slug, description=description))
                created += 1
        for name, slug in TAGS:
            if not session.exec(select(Tag).where(Tag.slug == slug)).first():
                session.add(Tag(name=name, slug=slug))
                created += 1
        session.commit()
    print(f"Seeded {created} new categories/tags.")


if __name__ == "__main__":
    seed()
