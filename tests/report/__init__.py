"""Tests for report module.

Test Files and Coverage:
========================

| Test File                  | Test Classes                 | Tested Constructs                          | Tested Functionalities              |
|----------------------------|------------------------------|--------------------------------------------|-------------------------------------|
| test_report_store.py       | ReplacementRecordTest        | ReplacementRecord                          | Serialization, describe()           |
|                            | ReportStoreTest              | ReportStore, ReportManifest                | DB write, overwrite, hash buckets   |
"""
