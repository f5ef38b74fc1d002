"""GraphQL operations sent to the Zeabur API."""

from __future__ import annotations

import json

USER_QUERY = """
query {
  me {
    _id
    username
    email
    credit
  }
}
"""

PROJECTS_QUERY = """
query {
  projects {
    edges {
      node {
        _id
        name
        region {
          name
        }
        environments {
          _id
        }
        services {
          _id
          name
          status
          template
          resourceLimit {
            cpu
            memory
          }
          domains {
            domain
            isGenerated
          }
        }
      }
    }
  }
}
"""

AIHUB_QUERY = """
query GetAIHubTenant {
  aihubTenant {
    balance
    keys {
      keyID
      alias
      cost
    }
  }
}
"""

SERVICE_COSTS_QUERY = """
query {
  me {
    serviceCostsThisMonth
  }
}
"""

MONTHLY_USAGE_OPERATION = "GetHeaderMonthlyUsage"

MONTHLY_USAGE_QUERY = """
query GetHeaderMonthlyUsage($from: String!, $to: String!, $groupByEntity: GroupByEntity, $groupByTime: GroupByTime, $groupByType: GroupByType, $userID: ObjectID!) {
  usages(
    from: $from
    to: $to
    groupByEntity: $groupByEntity
    groupByTime: $groupByTime
    groupByType: $groupByType
    userID: $userID
  ) {
    categories
    data {
      id
      name
      groupByEntity
      usageOfEntity
      __typename
    }
    __typename
  }
}
"""


def literal(value: str) -> str:
    """Encode a value as a GraphQL string literal."""
    return json.dumps(str(value))


def monthly_usage_variables(user_id: str, from_date: str, to_date: str) -> dict[str, str]:
    return {
        "from": from_date,
        "to": to_date,
        "groupByEntity": "PROJECT",
        "groupByTime": "DAY",
        "groupByType": "ALL",
        "userID": user_id,
    }


def suspend_service(service_id: str, environment_id: str) -> str:
    return (
        f"mutation {{ suspendService(serviceID: {literal(service_id)}, "
        f"environmentID: {literal(environment_id)}) }}"
    )


def restart_service(service_id: str, environment_id: str) -> str:
    return (
        f"mutation {{ restartService(serviceID: {literal(service_id)}, "
        f"environmentID: {literal(environment_id)}) }}"
    )


def rename_project(project_id: str, new_name: str) -> str:
    return f"mutation {{ renameProject(_id: {literal(project_id)}, name: {literal(new_name)}) }}"


def runtime_logs(project_id: str, service_id: str, environment_id: str) -> str:
    return f"""
query {{
  runtimeLogs(
    projectID: {literal(project_id)}
    serviceID: {literal(service_id)}
    environmentID: {literal(environment_id)}
  ) {{
    message
    timestamp
  }}
}}
"""
