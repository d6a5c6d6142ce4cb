"""Named GraphQL operations used against the GitHub GraphQL API.

Operation names double as the GraphQL operation name so requests are easy
to tell apart in logs and network traces.
"""

from __future__ import annotations

from enum import StrEnum


class Operation(StrEnum):
    GET_ALL_INITIAL_DATA = "GetAllInitialData"
    GET_VIEWER = "GetViewer"
    CREATE_PROJECT = "CreateProject"
    UPDATE_PROJECT = "UpdateProject"
    DELETE_PROJECT = "DeleteProject"
    ADD_COLLABORATOR = "AddCollaborator"
    REMOVE_COLLABORATOR = "RemoveCollaborator"
    CREATE_REPOSITORY = "CreateRepository"
    DISABLE_REPOSITORY = "DisableRepository"
    ENABLE_REPOSITORY = "EnableRepository"
    CREATE_ISSUE = "CreateIssue"
    UPDATE_ISSUE_STATUS = "UpdateIssueStatus"
    CLEAR_ISSUE_STATUS = "ClearIssueStatus"
    DELETE_ISSUE = "DeleteIssue"
    ADD_PROJECT_ITEM = "AddProjectItem"
    CREATE_LABEL = "CreateLabel"
    LINK_REPOSITORY_TO_PROJECT = "LinkRepositoryToProject"
    ADD_COLUMN = "AddColumn"
    DELETE_COLUMN = "DeleteColumn"


QUERIES = frozenset({Operation.GET_ALL_INITIAL_DATA, Operation.GET_VIEWER})


_PROJECT_FIELDS = """
    id
    number
    title
    shortDescription
    url
    fields(first: 50) {
        nodes {
            __typename
            ... on ProjectV2Field { id name dataType }
            ... on ProjectV2IterationField { id name dataType }
            ... on ProjectV2SingleSelectField {
                id
                name
                dataType
                options { id name color description }
            }
        }
    }
    items(first: 100) {
        nodes {
            id
            fieldValues(first: 20) {
                nodes {
                    __typename
                    ... on ProjectV2ItemFieldSingleSelectValue {
                        optionId
                        name
                        field { ... on ProjectV2SingleSelectField { id } }
                    }
                }
            }
            content {
                __typename
                ... on Issue {
                    id
                    number
                    title
                    body
                    url
                    labels(first: 20) { nodes { id name color description } }
                    assignees(first: 10) { nodes { login } }
                }
            }
        }
    }
    collaborators(first: 100) {
        edges {
            role
            node {
                ... on User { id login }
                ... on Team { id login: slug }
            }
        }
    }
    repositories(first: 50) { nodes { id } }
"""

_REPOSITORY_FIELDS = """
    id
    name
    url
    isArchived
    hasIssuesEnabled
    owner { login }
    projectsV2(first: 20) { nodes { id } }
"""

_OPTIONS_MUTATION = """
mutation %s($fieldId: ID!, $options: [ProjectV2SingleSelectFieldOptionInput!]) {
    updateProjectV2Field(input: { fieldId: $fieldId, singleSelectOptions: $options }) {
        projectV2Field {
            ... on ProjectV2SingleSelectField {
                id
                name
                options { id name color description }
            }
        }
    }
}
"""

_COLLABORATORS_MUTATION = """
mutation %s($projectId: ID!, $collaborators: [ProjectV2Collaborator!]!) {
    updateProjectV2Collaborators(
        input: { projectId: $projectId, collaborators: $collaborators }
    ) {
        collaborators(first: 100) { totalCount }
    }
}
"""

_REPOSITORY_FEATURES_MUTATION = """
mutation %%s($repositoryId: ID!) {
    updateRepository(
        input: { repositoryId: $repositoryId, hasIssuesEnabled: %(enabled)s, hasProjectsEnabled: %(enabled)s }
    ) {
        repository { %(fields)s }
    }
}
"""

DOCUMENTS: dict[Operation, str] = {
    Operation.GET_ALL_INITIAL_DATA: f"""
query GetAllInitialData {{
    viewer {{
        id
        login
        name
        avatarUrl
        repositories(first: 100, ownerAffiliations: [OWNER, COLLABORATOR]) {{
            nodes {{ {_REPOSITORY_FIELDS} }}
        }}
        projectsV2(first: 50) {{
            nodes {{ {_PROJECT_FIELDS} }}
        }}
    }}
}}
""",
    Operation.GET_VIEWER: """
query GetViewer {
    viewer { id login name avatarUrl }
}
""",
    Operation.CREATE_PROJECT: """
mutation CreateProject($ownerId: ID!, $title: String!) {
    createProjectV2(input: { ownerId: $ownerId, title: $title }) {
        projectV2 { id number title shortDescription url }
    }
}
""",
    Operation.UPDATE_PROJECT: """
mutation UpdateProject($projectId: ID!, $title: String, $shortDescription: String) {
    updateProjectV2(
        input: { projectId: $projectId, title: $title, shortDescription: $shortDescription }
    ) {
        projectV2 { id title shortDescription }
    }
}
""",
    Operation.DELETE_PROJECT: """
mutation DeleteProject($projectId: ID!) {
    deleteProjectV2(input: { projectId: $projectId }) {
        projectV2 { id }
    }
}
""",
    Operation.ADD_COLLABORATOR: _COLLABORATORS_MUTATION % "AddCollaborator",
    Operation.REMOVE_COLLABORATOR: _COLLABORATORS_MUTATION % "RemoveCollaborator",
    Operation.CREATE_REPOSITORY: f"""
mutation CreateRepository($name: String!, $description: String, $visibility: RepositoryVisibility!) {{
    createRepository(input: {{ name: $name, description: $description, visibility: $visibility }}) {{
        repository {{ {_REPOSITORY_FIELDS} }}
    }}
}}
""",
    Operation.DISABLE_REPOSITORY: (
        _REPOSITORY_FEATURES_MUTATION % {"enabled": "false", "fields": _REPOSITORY_FIELDS}
    )
    % "DisableRepository",
    Operation.ENABLE_REPOSITORY: (
        _REPOSITORY_FEATURES_MUTATION % {"enabled": "true", "fields": _REPOSITORY_FIELDS}
    )
    % "EnableRepository",
    Operation.CREATE_ISSUE: """
mutation CreateIssue($repositoryId: ID!, $title: String!, $body: String) {
    createIssue(input: { repositoryId: $repositoryId, title: $title, body: $body }) {
        issue { id number title url }
    }
}
""",
    Operation.UPDATE_ISSUE_STATUS: """
mutation UpdateIssueStatus(
    $projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!, $fieldName: String!
) {
    updateProjectV2ItemFieldValue(
        input: {
            projectId: $projectId
            itemId: $itemId
            fieldId: $fieldId
            value: { singleSelectOptionId: $optionId }
        }
    ) {
        projectV2Item {
            id
            fieldValueByName(name: $fieldName) {
                ... on ProjectV2ItemFieldSingleSelectValue { optionId name }
            }
        }
    }
}
""",
    Operation.CLEAR_ISSUE_STATUS: """
mutation ClearIssueStatus($projectId: ID!, $itemId: ID!, $fieldId: ID!) {
    clearProjectV2ItemFieldValue(
        input: { projectId: $projectId, itemId: $itemId, fieldId: $fieldId }
    ) {
        projectV2Item { id }
    }
}
""",
    Operation.DELETE_ISSUE: """
mutation DeleteIssue($issueId: ID!) {
    deleteIssue(input: { issueId: $issueId }) {
        repository { id }
    }
}
""",
    Operation.ADD_PROJECT_ITEM: """
mutation AddProjectItem($projectId: ID!, $contentId: ID!) {
    addProjectV2ItemById(input: { projectId: $projectId, contentId: $contentId }) {
        item { id }
    }
}
""",
    Operation.CREATE_LABEL: """
mutation CreateLabel($repositoryId: ID!, $name: String!, $color: String!, $description: String) {
    createLabel(
        input: { repositoryId: $repositoryId, name: $name, color: $color, description: $description }
    ) {
        label { id name color description }
    }
}
""",
    Operation.LINK_REPOSITORY_TO_PROJECT: """
mutation LinkRepositoryToProject($projectId: ID!, $repositoryId: ID!) {
    linkProjectV2ToRepository(input: { projectId: $projectId, repositoryId: $repositoryId }) {
        repository { id }
    }
}
""",
    Operation.ADD_COLUMN: _OPTIONS_MUTATION % "AddColumn",
    Operation.DELETE_COLUMN: _OPTIONS_MUTATION % "DeleteColumn",
}


def document_for(operation: Operation | str) -> str:
    """GraphQL document for an operation name.

    Raises:
        ValueError: If the operation name is not registered.
    """
    return DOCUMENTS[Operation(operation)]
