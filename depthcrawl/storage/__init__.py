"""
Output storage for recorded attribute values.
"""

from .records import ConsoleRecordStore, FileRecordStore, PageRecord, RecordStore, create_record_store

__all__ = ['ConsoleRecordStore', 'FileRecordStore', 'PageRecord', 'RecordStore', 'create_record_store']
