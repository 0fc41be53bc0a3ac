from __future__ import annotations
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from typing import TypedDict

class MongoHandles(TypedDict):
    client: MongoClient
    db: Database
    projects: Collection

def connect_mongo(mongo_uri: str, db_name: str, *, tls: bool = False) -> MongoHandles:
    # tls=True for MongoDB Atlas
    client = MongoClient(
        mongo_uri,
        tls=tls,
        serverSelectionTimeoutMS=30000,
        connectTimeoutMS=20000,
        socketTimeoutMS=20000,
    )
    db = client[db_name]
    return {
        "client": client,
        "db": db,
        "projects": db["projects"],
    }

def close_mongo(handles: MongoHandles) -> None:
    """Release the client's pooled connections and monitor threads."""
    handles["client"].close()
