"""Resource Graph schema module: tables, examples and KQL language documentation.

Key entry points:
  - orchestrator.run_generation()          : fetch + parse + match + merge + save
  - table_matcher.match_snippets_to_tables(): attach query samples to tables
  - doc_merger.merge_documentation()       : attach reference docs to elements
"""
