"""Tests for command implementation modules.

Test Files and Coverage:
========================

| Test File                  | Test Classes                 | Tested Constructs                          | Tested Functionalities                        |
|----------------------------|------------------------------|--------------------------------------------|-----------------------------------------------|
| test_dedup.py              | BuildCatalogsTest            | build_catalogs()                           | Join semantics, fatal root errors             |
|                            | ReplacementRunnerTest        | ReplacementRunner                          | Report-and-continue, dry run, bounded fan-out |
|                            | DoDedupTest                  | do_dedup(), Deduplicator.run()             | End-to-end scenarios, content verification    |
"""
