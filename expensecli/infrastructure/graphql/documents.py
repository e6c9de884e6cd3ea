"""GraphQL documents for the expense API.

Each document's root field name is exported next to it so callers can pull
the payload out of ``data`` without repeating string literals.
"""

import re
from typing import Optional

from expensecli.domain.models.common import GraphQLDocument

EXPENSE_FIELDS = """
      id
      userId
      name
      amount
      category
      date
      description
      createdAt
      updatedAt
"""

LIST_EXPENSES_FIELD = "getExpenses"
LIST_EXPENSES = GraphQLDocument(f"""
  query ListExpenses($userId: ID!) {{
    getExpenses(userId: $userId) {{{EXPENSE_FIELDS}    }}
  }}
""")

GET_EXPENSE_FIELD = "getExpense"
GET_EXPENSE = GraphQLDocument(f"""
  query GetExpense($id: ID!) {{
    getExpense(id: $id) {{{EXPENSE_FIELDS}    }}
  }}
""")

CREATE_EXPENSE_FIELD = "createExpense"
CREATE_EXPENSE = GraphQLDocument(f"""
  mutation CreateExpense(
    $name: String!,
    $amount: Float!,
    $category: String!,
    $date: AWSDateTime!,
    $userId: ID,
    $description: String
  ) {{
    createExpense(
      name: $name,
      amount: $amount,
      category: $category,
      date: $date,
      userId: $userId,
      description: $description
    ) {{{EXPENSE_FIELDS}    }}
  }}
""")

UPDATE_EXPENSE_FIELD = "updateExpense"
UPDATE_EXPENSE = GraphQLDocument(f"""
  mutation UpdateExpense(
    $id: ID!,
    $name: String,
    $amount: Float,
    $category: String,
    $date: AWSDateTime,
    $description: String
  ) {{
    updateExpense(
      id: $id,
      name: $name,
      amount: $amount,
      category: $category,
      date: $date,
      description: $description
    ) {{{EXPENSE_FIELDS}    }}
  }}
""")

DELETE_EXPENSE_FIELD = "deleteExpense"
DELETE_EXPENSE = GraphQLDocument(f"""
  mutation DeleteExpense($id: ID!) {{
    deleteExpense(id: $id) {{{EXPENSE_FIELDS}    }}
  }}
""")

_OPERATION_RE = re.compile(r"^\s*(?:query|mutation)\s+(\w+)")


def operation_name(document: str) -> Optional[str]:
    """Returns the operation name of a document (``ListExpenses`` etc.), if named."""
    match = _OPERATION_RE.match(document)
    return match.group(1) if match else None
