from pprint import pformat

import pymongo

from .. import app, mongo


def init_collections():
    """Initialize the collections and their indexes."""
    current = mongo.db.list_collection_names()
    collections = {
        app.config["PERSONNEL_COLLECTION"],
        "saved_filters",
        "custom_fields",
        "users",
    }
    to_create = collections.difference(current)
    for collection in to_create:
        mongo.db.create_collection(collection)
    create_indexes()
    return to_create, current


def create_indexes():
    """Create (or confirm) every index the application relies on. Idempotent."""
    personnel = mongo.db[app.config["PERSONNEL_COLLECTION"]]
    personnel.create_index([("ord", pymongo.ASCENDING), ("_id", pymongo.ASCENDING)])
    personnel.create_index([("companhia", pymongo.ASCENDING)])
    personnel.create_index([("posto_graduacao", pymongo.ASCENDING)])

    mongo.db.saved_filters.create_index("filter_id", unique=True)
    mongo.db.saved_filters.create_index([("owner_id", pymongo.ASCENDING), ("created_at", pymongo.ASCENDING)])
    mongo.db.saved_filters.create_index("scope")

    mongo.db.custom_fields.create_index("field_id", unique=True)
    mongo.db.custom_fields.create_index("name", unique=True)

    mongo.db.users.create_index("username", unique=True)


def collection_status(collection):
    print(collection)
    print("## Indexes ##")
    print(pformat(collection.index_information()))
    print("## Options ##")
    print(pformat(collection.options()))
    print("## Number of documents ##")
    print(collection.estimated_document_count())
