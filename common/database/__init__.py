"""
Database module - Async MongoDB connection using Motor.

Usage:
    from common.database import MongoDB

    mongo = MongoDB()
    await mongo.connect(uri, database_name)
    users = mongo.get_collection("users")
"""

from common.database.mongodb import MongoDB

__all__ = ["MongoDB"]
