"""Test configuration and fixtures."""
import pytest

from argschema.services.resource_graph.client import DocsClient
from argschema.services.resource_graph.models import (
    KEYWORD_CATEGORY,
    OPERATOR_CATEGORY,
    FUNCTION_CATEGORY,
    AGGREGATE_CATEGORY,
    LanguageElement,
    Schema,
    Table,
)

# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

COUNT_DOC = """# count() (aggregation function)
!INCLUDE [x](../includes/x.md)
Counts rows.
## Syntax
`count()`
## Examples
```kusto
StorageResources | count
```
# Related content
```kusto
ShouldNotAppear | count
```
"""

SAMPLE_DOC = """# Starter queries

## Count resources

```kusto
Resources | summarize count()
```

```azurecli
az graph query -q "Resources | summarize count() by type | limit 10"
```

```azurepowershell-interactive
Search-AzGraph -Query "SecurityResources | where type == 'microsoft.security/assessments'"
```

```
ResourceContainers | where type == 'microsoft.resources/subscriptions'
```

```bash
curl https://management.azure.com/providers/Microsoft.ResourceGraph/resources
```
"""


# ---------------------------------------------------------------------------
# Schema fixtures
# ---------------------------------------------------------------------------


def make_schema(
    tables=(),
    keywords=(),
    operators=(),
    functions=(),
    aggregates=(),
) -> Schema:
    return Schema(
        tables={name: Table(name=name) for name in tables},
        keywords=[LanguageElement(n, "keyword", KEYWORD_CATEGORY) for n in keywords],
        operators=[LanguageElement(n, "operator", OPERATOR_CATEGORY) for n in operators],
        functions=[LanguageElement(n, "function", FUNCTION_CATEGORY) for n in functions]
        + [LanguageElement(n, "aggregate", AGGREGATE_CATEGORY) for n in aggregates],
    )


@pytest.fixture
def schema_factory():
    return make_schema


@pytest.fixture
def count_doc():
    return COUNT_DOC


@pytest.fixture
def sample_doc():
    return SAMPLE_DOC


@pytest.fixture
def table_schema():
    return make_schema(
        tables=["resources", "securityresources", "storageresources", "resourcecontainers"]
    )


@pytest.fixture
def element_schema():
    return make_schema(
        keywords=["by", "limit", "take", "let", "where"],
        operators=["contains", "!contains", "notcontains", "has", "mv-expand"],
        functions=["strcat", "tolower", "bag_pack"],
        aggregates=["count", "dcount"],
    )


# ---------------------------------------------------------------------------
# DocsClient fixture
# ---------------------------------------------------------------------------


@pytest.fixture
async def docs_client():
    """DocsClient with no retry delay."""
    async with DocsClient(
        timeout=5.0, max_retries=3, base_delay=0, max_delay=0, github_token="test-token"
    ) as client:
        yield client
