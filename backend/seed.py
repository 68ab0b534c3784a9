import datetime as dt

from sqlmodel import Session, select

from db import engine
from models import Performance


def seed_database():
    """Seed the database with sample performances."""
    with Session(engine) as session:
        # Check if data already exists
        existing = session.exec(select(Performance)).first()
        if existing:
            print("Database already has data, skipping seed.")
            return

        sample_performances = [
            Performance(
                artist="万能青年旅店",
                type="Livehouse",
                province="广东省",
                city="深圳",
                venue="B10现场",
                date=dt.date(2024, 3, 1),
            ),
            Performance(
                artist="万能青年旅店",
                type="Festival",
                province="内蒙古自治区",
                city="呼和浩特",
                notes="Grassland festival, second day",
                date=dt.date(2024, 7, 20),
            ),
            Performance(
                artist="草东没有派对",
                type="Livehouse",
                province="北京市",
                city="北京",
                venue="MAO Livehouse",
                date=dt.date(2024, 3, 15),
            ),
            Performance(
                artist="新裤子",
                type="Concert",
                province="新疆维吾尔自治区",
                city="乌鲁木齐",
                date=dt.date(2024, 9, 8),
            ),
            Performance(
                artist="新裤子",
                type="Festival",
                province="广东省",
                city="广州",
                venue="海心沙",
                date=dt.date(2024, 12, 31),
                notes="New Year's Eve set",
            ),
            Performance(
                artist="痛仰乐队",
                type="Livehouse",
                province="香港特别行政区",
                notes="Date not announced yet",
            ),
        ]

        session.add_all(sample_performances)
        session.commit()
        print(f"Seeded database with {len(sample_performances)} sample performances.")


if __name__ == "__main__":
    from db import create_db_and_tables

    create_db_and_tables()
    seed_database()
