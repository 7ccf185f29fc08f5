"""
In-memory graph store for one reasoning session.

The store is an arena of nodes, edges, hyperedges and layers plus per-node
outgoing/incoming edge-id lists, so neighbour and incident-edge lookups cost
O(degree). It owns the stage sequencer, the vertex/edge caps and the undo log
that makes every mutating operation atomic.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from functools import partial
from typing import Any

import networkx as nx

from asrgot.core.config import GraphConfig
from asrgot.core.errors import CapacityExceeded, InternalInconsistency, ValidationError
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage, StageSequencer
from asrgot.graph.schema import (
    DEFAULT_LAYERS,
    ROOT_ID,
    CausalMetadata,
    ConfidenceVector,
    Edge,
    EdgeType,
    Hyperedge,
    Layer,
    Node,
    TemporalMetadata,
)

logger = get_logger("graph.store")

Clock = Callable[[], datetime]
Undo = Callable[[], None]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ReasoningGraph:
    """
    Mutable reasoning graph with adjacency lists.

    Nodes created inside the current transaction, and ids passed to
    ``protect()``, are never chosen by capacity cleanup. The root is never
    chosen either.

    Inside a transaction every structural change logs its inverse. Callers
    that change an existing node in place must fetch it with ``touch()``
    first so the change can be undone too.
    """

    def __init__(self, config: GraphConfig | None = None, *, clock: Clock | None = None) -> None:
        self.config = config or GraphConfig()
        self.clock: Clock = clock or utc_now
        self.stages = StageSequencer()
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._outgoing: dict[str, list[str]] = {}
        self._incoming: dict[str, list[str]] = {}
        self._hyperedges: dict[str, Hyperedge] = {}
        self._layers: dict[str, Layer] = {
            layer_id: Layer(layer_id, name, description)
            for layer_id, name, description in DEFAULT_LAYERS
        }
        self._counters: dict[str, int] = {}
        self._protected: set[str] = set()
        self._undo: list[Undo] | None = None
        self._touched: set[str] = set()
        self._orders: dict[int, tuple[dict[str, Any], list[str]]] = {}

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def stage(self) -> Stage:
        return self.stages.current

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def now(self) -> datetime:
        return self.clock()

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node:
        """
        Look up a node by id.

        Raises:
            ValidationError: If no node has this id
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise ValidationError(f"Node {node_id!r} does not exist", node_id=node_id) from None

    def nodes(self) -> list[Node]:
        """All nodes in insertion order."""
        return list(self._nodes.values())

    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def hyperedges(self) -> list[Hyperedge]:
        return list(self._hyperedges.values())

    def layers(self) -> list[Layer]:
        return list(self._layers.values())

    def get_layer(self, layer_id: str) -> Layer:
        try:
            return self._layers[layer_id]
        except KeyError:
            raise ValidationError(f"Layer {layer_id!r} does not exist", field="layer_id") from None

    def out_edges(self, node_id: str) -> list[Edge]:
        return [self._edges[edge_id] for edge_id in self._outgoing.get(node_id, ())]

    def in_edges(self, node_id: str) -> list[Edge]:
        return [self._edges[edge_id] for edge_id in self._incoming.get(node_id, ())]

    def incident_edges(self, node_id: str) -> list[Edge]:
        return self.out_edges(node_id) + self.in_edges(node_id)

    def neighbors(self, node_id: str) -> set[str]:
        """Adjacent node ids, ignoring edge direction."""
        adjacent = {edge.target for edge in self.out_edges(node_id)}
        adjacent.update(edge.source for edge in self.in_edges(node_id))
        adjacent.discard(node_id)
        return adjacent

    def children(self, node_id: str, edge_type: EdgeType) -> list[Node]:
        """Targets of ``node_id``'s outgoing edges of one type, in creation order."""
        return [
            self._nodes[edge.target]
            for edge in self.out_edges(node_id)
            if edge.edge_type is edge_type
        ]

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def next_sequence(self, name: str) -> int:
        """Monotonic per-name counter; values are never reused after removals."""
        value = self._counters.get(name, 0) + 1
        self._counters[name] = value
        return value

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def protect(self, *node_ids: str) -> None:
        """Exclude existing nodes from capacity cleanup for the current transaction."""
        self._protected.update(node_ids)

    def touch(self, node_id: str) -> Node:
        """
        Fetch a node that is about to be changed in place.

        Inside a transaction the node's confidence, metadata fields, topology
        metrics and revision count are logged on first touch. Other nested
        metadata records are replaced by callers, never mutated.

        Raises:
            ValidationError: If no node has this id
        """
        node = self.get_node(node_id)
        if self._undo is None or node_id in self._touched:
            return node
        self._touched.add(node_id)
        confidence = node.confidence
        metadata = copy.copy(node.metadata)
        metadata.topology_metrics = copy.copy(node.metadata.topology_metrics)
        revisions = len(node.metadata.revision_history)

        def undo() -> None:
            del metadata.revision_history[revisions:]
            node.confidence = confidence
            node.metadata = metadata

        self._undo.append(undo)
        return node

    def add_node(self, node: Node) -> Node:
        """
        Insert a node, running capacity cleanup first if the vertex cap is reached.

        Raises:
            ValidationError: If the id is taken or the layer is unknown
            CapacityExceeded: If the cap is still reached after cleanup
        """
        node_id = node.node_id
        if node_id in self._nodes:
            raise ValidationError(f"Node {node_id!r} already exists", node_id=node_id)
        if node.metadata.layer_id not in self._layers:
            raise ValidationError(
                f"Layer {node.metadata.layer_id!r} does not exist",
                field="layer_id",
                node_id=node_id,
            )
        self._ensure_capacity("vertices", self.config.max_vertices, lambda: len(self._nodes) + 1)
        layer = self._layers[node.metadata.layer_id]
        self._nodes[node_id] = node
        self._outgoing[node_id] = []
        self._incoming[node_id] = []
        layer.node_ids.add(node_id)
        self._protected.add(node_id)
        self._touched.add(node_id)

        def undo() -> None:
            del self._nodes[node_id]
            del self._outgoing[node_id]
            del self._incoming[node_id]
            layer.node_ids.discard(node_id)

        self._log(undo)
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        edge_type: EdgeType,
        confidence: ConfidenceVector,
        *,
        causal_metadata: CausalMetadata | None = None,
        temporal_metadata: TemporalMetadata | None = None,
    ) -> Edge:
        """
        Insert a directed edge between two existing nodes.

        Raises:
            ValidationError: If either endpoint is missing
            CapacityExceeded: If the edge cap is still reached after cleanup
        """
        self.get_node(source)
        self.get_node(target)
        self._protected.update((source, target))
        self._ensure_capacity("edges", self.config.max_edges, lambda: len(self._edges) + 1)
        edge = Edge(
            edge_id=f"e{self.next_sequence('edge')}",
            source=source,
            target=target,
            edge_type=edge_type,
            confidence=confidence,
            created_at=self.now(),
            causal_metadata=causal_metadata,
            temporal_metadata=temporal_metadata,
        )
        self._link_edge(edge)
        return edge

    def _link_edge(self, edge: Edge) -> None:
        self._edges[edge.edge_id] = edge
        self._outgoing[edge.source].append(edge.edge_id)
        self._incoming[edge.target].append(edge.edge_id)

        def undo() -> None:
            del self._edges[edge.edge_id]
            self._outgoing[edge.source].remove(edge.edge_id)
            self._incoming[edge.target].remove(edge.edge_id)

        self._log(undo)

    def add_hyperedge(self, hyperedge: Hyperedge) -> Hyperedge:
        missing = [m for m in (*hyperedge.member_ids, hyperedge.target) if m not in self._nodes]
        if missing:
            raise ValidationError(
                f"Hyperedge {hyperedge.hyperedge_id} references missing nodes: {', '.join(missing)}",
                field="member_ids",
            )
        self._put_hyperedge(hyperedge.hyperedge_id, hyperedge)
        return hyperedge

    def register_layer(self, layer_id: str, name: str = "", description: str = "") -> Layer:
        """
        Add a layer that later nodes may be placed in.

        Raises:
            ValidationError: If the id is blank or already registered
        """
        if not isinstance(layer_id, str) or not layer_id.strip():
            raise ValidationError("layer_id must be a non-empty string", field="layer_id")
        layer_id = layer_id.strip()
        if layer_id in self._layers:
            raise ValidationError(f"Layer {layer_id!r} already exists", field="layer_id")
        layer = Layer(layer_id, name or layer_id, description)
        self._layers[layer_id] = layer
        self._log(partial(self._layers.pop, layer_id))
        return layer

    def remove_edge(self, edge_id: str) -> None:
        edge = self._edges[edge_id]
        outgoing = self._outgoing[edge.source]
        incoming = self._incoming[edge.target]
        out_index = outgoing.index(edge_id)
        in_index = incoming.index(edge_id)
        self._keep_order(self._edges)
        del self._edges[edge_id]
        del outgoing[out_index]
        del incoming[in_index]

        def undo() -> None:
            self._edges[edge_id] = edge
            outgoing.insert(out_index, edge_id)
            incoming.insert(in_index, edge_id)

        self._log(undo)

    def remove_node(self, node_id: str) -> None:
        """
        Remove a node with its incident edges and hyperedge memberships.

        Raises:
            InternalInconsistency: If asked to remove the root
        """
        if node_id == ROOT_ID:
            raise InternalInconsistency("Refusing to remove the root node", node_id=node_id)
        node = self.get_node(node_id)
        for edge_id in list(self._outgoing[node_id]) + list(self._incoming[node_id]):
            if edge_id in self._edges:
                self.remove_edge(edge_id)
        self._replace_in_hyperedges({node_id: None})
        layer = self._layers[node.metadata.layer_id]
        self._keep_order(self._nodes)
        outgoing = self._outgoing.pop(node_id)
        incoming = self._incoming.pop(node_id)
        del self._nodes[node_id]
        layer.node_ids.discard(node_id)
        self._protected.discard(node_id)

        def undo() -> None:
            self._nodes[node_id] = node
            self._outgoing[node_id] = outgoing
            self._incoming[node_id] = incoming
            layer.node_ids.add(node_id)

        self._log(undo)

    def rewire(self, original_ids: Iterable[str], merged_id: str) -> None:
        """
        Point every edge and hyperedge reference of ``original_ids`` at ``merged_id``.

        Edges that would become self-loops on the merged node are dropped, as
        are parallel edges of the same type. The originals are left without
        incident edges; callers remove them.
        """
        originals = set(original_ids)
        self.get_node(merged_id)
        for original in originals:
            for edge_id in list(self._outgoing[original]) + list(self._incoming[original]):
                edge = self._edges.get(edge_id)
                if edge is None:
                    continue
                source = merged_id if edge.source in originals else edge.source
                target = merged_id if edge.target in originals else edge.target
                self.remove_edge(edge_id)
                if source != target:
                    self._link_edge(replace(edge, source=source, target=target))
        seen: set[tuple[str, str, EdgeType]] = set()
        for edge in self.incident_edges(merged_id):
            key = (edge.source, edge.target, edge.edge_type)
            if key in seen:
                self.remove_edge(edge.edge_id)
            else:
                seen.add(key)
        self._replace_in_hyperedges({original: merged_id for original in originals})

    def _replace_in_hyperedges(self, mapping: dict[str, str | None]) -> None:
        for hyperedge_id, hyperedge in list(self._hyperedges.items()):
            target = mapping.get(hyperedge.target, hyperedge.target)
            if target is None:
                self._put_hyperedge(hyperedge_id, None)
                continue
            members = [mapping.get(member, member) for member in hyperedge.member_ids]
            distinct = tuple(dict.fromkeys(m for m in members if m is not None and m != target))
            if len(distinct) <= 2:
                logger.info("Dropping hyperedge %s: %d members left", hyperedge_id, len(distinct))
                self._put_hyperedge(hyperedge_id, None)
            elif (target, distinct) != (hyperedge.target, hyperedge.member_ids):
                self._put_hyperedge(
                    hyperedge_id, replace(hyperedge, target=target, member_ids=distinct)
                )

    def _put_hyperedge(self, hyperedge_id: str, hyperedge: Hyperedge | None) -> None:
        """Store or, with ``None``, delete one hyperedge."""
        previous = self._hyperedges.get(hyperedge_id)
        if hyperedge is None:
            self._keep_order(self._hyperedges)
            del self._hyperedges[hyperedge_id]
        else:
            self._hyperedges[hyperedge_id] = hyperedge

        def undo() -> None:
            if previous is None:
                del self._hyperedges[hyperedge_id]
            else:
                self._hyperedges[hyperedge_id] = previous

        self._log(undo)

    def _ensure_capacity(self, resource: str, limit: int, required: Callable[[], int]) -> None:
        if required() <= limit:
            return
        removed: list[str] = []
        while required() > limit:
            candidates = [
                node
                for node in self._nodes.values()
                if node.node_id != ROOT_ID and node.node_id not in self._protected
            ]
            if not candidates:
                raise CapacityExceeded(resource=resource, limit=limit, required=required())
            victim = min(candidates, key=lambda n: (n.mean_confidence, n.node_id))
            self.remove_node(victim.node_id)
            removed.append(victim.node_id)
        logger.warning(
            "Capacity cleanup for %s removed %d node(s): %s", resource, len(removed), ", ".join(removed)
        )

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def refresh_topology(self, node_ids: Iterable[str]) -> None:
        """Recompute degree, degree centrality and clustering for the given nodes."""
        denominator = max(len(self._nodes) - 1, 1)
        for node_id in node_ids:
            if node_id not in self._nodes:
                continue
            node = self.touch(node_id)
            degree = len(self._outgoing[node_id]) + len(self._incoming[node_id])
            metrics = node.metadata.topology_metrics
            metrics.degree = degree
            metrics.degree_centrality = degree / denominator
            metrics.clustering_coefficient = self.clustering(node_id)

    def clustering(self, node_id: str) -> float:
        """
        Local clustering coefficient of one node on the undirected simple graph.

        Only the node's neighbourhood is built, so the cost is bounded by the
        neighbours' degrees. The value equals ``nx.clustering`` on the full
        undirected view used by the graph summary.
        """
        adjacent = self.neighbors(node_id)
        ego = nx.Graph()
        ego.add_node(node_id)
        ego.add_edges_from((node_id, other) for other in adjacent)
        ego.add_edges_from((a, b) for a in adjacent for b in self.neighbors(a) & adjacent)
        return float(nx.clustering(ego, node_id))

    # ------------------------------------------------------------------
    # Atomicity and invariants
    # ------------------------------------------------------------------

    def _log(self, undo: Undo) -> None:
        if self._undo is not None:
            self._undo.append(undo)

    def _keep_order(self, table: dict[str, Any]) -> None:
        # Keys re-inserted by a rollback land at the end; remember the original order
        if self._undo is not None and id(table) not in self._orders:
            self._orders[id(table)] = (table, list(table))

    @contextmanager
    def transaction(self) -> Iterator[ReasoningGraph]:
        """
        Run a block atomically.

        Changes made inside the block log their inverses. Any exception
        replays the log backwards, restoring the graph (stage included) to
        its state on entry, and is re-raised. Transactions do not nest.

        Raises:
            InternalInconsistency: If a transaction is already open
        """
        if self._undo is not None:
            raise InternalInconsistency("Graph transactions do not nest", stage=int(self.stage))
        stage = self.stages.current
        counters = dict(self._counters)
        self._undo = []
        self._orders = {}
        self._protected = set()
        self._touched = set()
        try:
            yield self
        except BaseException:
            self._rollback(stage, counters)
            raise
        finally:
            self._undo = None
            self._orders = {}
            self._protected = set()
            self._touched = set()

    def _rollback(self, stage: Stage, counters: dict[str, int]) -> None:
        undo_log, self._undo = self._undo or [], None
        for undo in reversed(undo_log):
            undo()
        for table, order in self._orders.values():
            restored = {key: table[key] for key in order if key in table}
            table.clear()
            table.update(restored)
        self._counters = counters
        self.stages = StageSequencer(stage)
        logger.debug("Rolled back %d change(s)", len(undo_log))

    def check_invariants(self) -> None:
        """
        Verify structural invariants.

        Raises:
            InternalInconsistency: On the first violated invariant
        """
        if self.stage >= Stage.INITIALIZATION and ROOT_ID not in self._nodes:
            self._inconsistent("root node is missing")
        for edge in self._edges.values():
            if edge.source not in self._nodes or edge.target not in self._nodes:
                self._inconsistent(f"edge {edge.edge_id} is dangling ({edge.source}->{edge.target})")
        # Each edge must be listed exactly once as outgoing and once as incoming
        listed = 0
        for node_id in self._nodes:
            for edge_ids, end in ((self._outgoing[node_id], "source"), (self._incoming[node_id], "target")):
                if len(set(edge_ids)) != len(edge_ids):
                    self._inconsistent(f"node {node_id} lists an edge twice")
                for edge_id in edge_ids:
                    edge = self._edges.get(edge_id)
                    if edge is None or getattr(edge, end) != node_id:
                        self._inconsistent(f"node {node_id} lists unknown edge {edge_id}")
                listed += len(edge_ids)
        if listed != 2 * len(self._edges):
            self._inconsistent("an edge is missing from the adjacency lists")
        for hyperedge in self._hyperedges.values():
            if len(set(hyperedge.member_ids)) <= 2:
                self._inconsistent(f"hyperedge {hyperedge.hyperedge_id} has too few members")
            for member in (*hyperedge.member_ids, hyperedge.target):
                if member not in self._nodes:
                    self._inconsistent(
                        f"hyperedge {hyperedge.hyperedge_id} references missing node {member}"
                    )
        for layer in self._layers.values():
            for node_id in layer.node_ids:
                node = self._nodes.get(node_id)
                if node is None or node.metadata.layer_id != layer.layer_id:
                    self._inconsistent(f"layer {layer.layer_id} lists foreign node {node_id}")

    def _inconsistent(self, message: str) -> None:
        logger.error("Invariant violated: %s", message)
        raise InternalInconsistency(f"Invariant violated: {message}", stage=int(self.stage))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Lossless, JSON-compatible document of the whole graph."""
        return {
            "stage": int(self.stage),
            "config": {name: getattr(self.config, name) for name in GraphConfig.field_names()},
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges.values()],
            "hyperedges": [h.to_dict() for h in self._hyperedges.values()],
            "layers": [layer.to_dict() for layer in self._layers.values()],
            "counters": dict(self._counters),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, clock: Clock | None = None) -> ReasoningGraph:
        """
        Rebuild a graph from ``to_dict`` output.

        Raises:
            ValidationError: If the document is malformed
            InternalInconsistency: If the rebuilt graph violates an invariant
        """
        try:
            graph = cls(GraphConfig.from_mapping(data.get("config") or {}), clock=clock)
            graph.stages = StageSequencer(Stage(int(data.get("stage", 0))))
            graph._layers = {}
            for layer_data in data.get("layers") or ():
                layer = Layer.from_dict(layer_data)
                graph._layers[layer.layer_id] = layer
            for node_data in data.get("nodes") or ():
                node = Node.from_dict(node_data)
                graph._nodes[node.node_id] = node
                graph._outgoing[node.node_id] = []
                graph._incoming[node.node_id] = []
            for edge_data in data.get("edges") or ():
                edge = Edge.from_dict(edge_data)
                if edge.source not in graph._nodes or edge.target not in graph._nodes:
                    raise ValidationError(f"Edge {edge.edge_id} references a missing node")
                graph._edges[edge.edge_id] = edge
                graph._outgoing[edge.source].append(edge.edge_id)
                graph._incoming[edge.target].append(edge.edge_id)
            for hyperedge_data in data.get("hyperedges") or ():
                graph.add_hyperedge(Hyperedge.from_dict(hyperedge_data))
            graph._counters = {str(k): int(v) for k, v in (data.get("counters") or {}).items()}
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed graph document: {e}", field="snapshot") from e
        graph.check_invariants()
        return graph
