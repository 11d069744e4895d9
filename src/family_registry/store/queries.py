"""Parameterised Cypher templates.

Every statement the registry sends to the graph store lives here. Labels and
relationship types are fixed in the template text; caller input only ever
travels through parameters.
"""
from __future__ import annotations

from ..models import RelationshipType

VERIFY_CONNECTIVITY = "RETURN 1 AS ok"

# Person nodes

CREATE_PERSON = """
CREATE (p:Person $props)
RETURN p {.*} AS person
"""

MATCH_ALL_PEOPLE = """
MATCH (p:Person)
RETURN p {.*} AS person
ORDER BY p.lastName, p.firstName
"""

SEARCH_PEOPLE = """
MATCH (p:Person)
WHERE toLower(p.name) CONTAINS toLower($term)
RETURN p {.*} AS person
ORDER BY p.lastName, p.firstName
"""

MATCH_PERSON_BY_ID = """
MATCH (p:Person {id: $id})
RETURN p {.*} AS person
"""

# Null values in $fields remove the property.
UPDATE_PERSON = """
MATCH (p:Person {id: $id})
SET p += $fields
RETURN p {.*} AS person
"""

DELETE_PERSON_EDGES = """
MATCH (p:Person {id: $id})-[r]-()
DELETE r
"""

DELETE_PERSON = """
MATCH (p:Person {id: $id})
DELETE p
"""

# Parent/child edges

MERGE_CHILD_OF = """
MATCH (c:Person {id: $childId}), (p:Person {id: $parentId})
MERGE (c)-[r:CHILD_OF]->(p)
SET r.type = $role
RETURN count(r) AS edges
"""

DELETE_CHILD_OF = """
MATCH (c:Person {id: $childId})-[r:CHILD_OF]->(p:Person {id: $parentId})
DELETE r
RETURN count(r) AS deleted
"""

MATCH_SIBLING_IDS = """
MATCH (c:Person {id: $id})-[:CHILD_OF]->(:Person)<-[:CHILD_OF]-(s:Person)
WHERE s.id <> $id
RETURN DISTINCT s.id AS id
"""

# Returns a row only when $descendantId reaches $ancestorId along CHILD_OF edges.
MATCH_LINEAGE_PATH = """
MATCH (d:Person {id: $descendantId}), (a:Person {id: $ancestorId})
MATCH path = shortestPath((d)-[:CHILD_OF*1..]->(a))
RETURN length(path) AS distance
"""

MATCH_ANCESTORS = """
MATCH path = (p:Person {id: $id})-[:CHILD_OF*1..]->(a:Person)
WHERE $depth IS NULL OR length(path) <= $depth
RETURN a.id AS id,
       a.name AS name,
       a.birthYear AS birthYear,
       a.deathYear AS deathYear,
       min(length(path)) AS generation
ORDER BY generation, name
"""

MATCH_DESCENDANTS = """
MATCH path = (p:Person {id: $id})<-[:CHILD_OF*1..]-(d:Person)
WHERE $depth IS NULL OR length(path) <= $depth
RETURN d.id AS id,
       d.name AS name,
       d.birthYear AS birthYear,
       d.deathYear AS deathYear,
       min(length(path)) AS generation
ORDER BY generation, name
"""

# Generic edges. Bidirectional types are merged both ways.

MERGE_RELATIONSHIP = {
    RelationshipType.PARENT_OF: """
MATCH (a:Person {id: $fromId}), (b:Person {id: $toId})
MERGE (a)-[r:PARENT_OF]->(b)
RETURN count(r) AS edges
""",
    RelationshipType.MARRIED_TO: """
MATCH (a:Person {id: $fromId}), (b:Person {id: $toId})
MERGE (a)-[:MARRIED_TO]->(b)
MERGE (b)-[:MARRIED_TO]->(a)
RETURN count(*) AS edges
""",
    RelationshipType.SIBLING_OF: """
MATCH (a:Person {id: $fromId}), (b:Person {id: $toId})
MERGE (a)-[:SIBLING_OF]->(b)
MERGE (b)-[:SIBLING_OF]->(a)
RETURN count(*) AS edges
""",
}

DELETE_RELATIONSHIP = {
    RelationshipType.PARENT_OF: """
MATCH (a:Person {id: $fromId})-[r:PARENT_OF]->(b:Person {id: $toId})
DELETE r
RETURN count(r) AS deleted
""",
    RelationshipType.MARRIED_TO: """
MATCH (a:Person {id: $fromId})-[r:MARRIED_TO]-(b:Person {id: $toId})
DELETE r
RETURN count(r) AS deleted
""",
    RelationshipType.SIBLING_OF: """
MATCH (a:Person {id: $fromId})-[r:SIBLING_OF]-(b:Person {id: $toId})
DELETE r
RETURN count(r) AS deleted
""",
}

# Force-directed view

GRAPH_NODES = """
MATCH (p:Person)
RETURN p.id AS id, p.name AS name
ORDER BY p.lastName, p.firstName
"""

GRAPH_LINKS = """
MATCH (a:Person)-[r]->(b:Person)
RETURN a.id AS source, b.id AS target, type(r) AS type
"""
