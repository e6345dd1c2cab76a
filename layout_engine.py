# layout_engine.py
# Layered (left-to-right) auto-layout for tables connected by relationships.
# Ranks follow edge direction, crossings are reduced with barycenter sweeps and
# disconnected sub-diagrams are stacked vertically.

import logging

import networkx as nx
from PyQt6.QtCore import QPointF

import constants
from utils import snap_to_grid

logger = logging.getLogger(__name__)


class LayoutBox:
    def __init__(self, box_id, width, height):
        self.id = box_id
        self.width = width
        self.height = height

    def __repr__(self):
        return f"LayoutBox({self.id!r}, {self.width}x{self.height})"


def estimate_table_size(column_count, width=constants.DEFAULT_TABLE_WIDTH):
    """Tables grow by one row height per column so larger tables get more room."""
    return width, constants.TABLE_HEADER_HEIGHT + constants.COLUMN_HEIGHT * column_count


def boxes_for_tables(tables, width=constants.DEFAULT_TABLE_WIDTH):
    boxes = []
    for table in tables:
        box_width, box_height = estimate_table_size(len(table.columns), width)
        boxes.append(LayoutBox(table.id, box_width, box_height))
    return boxes


def edges_for_relationships(relationships):
    return [(rel.source_table_id, rel.target_table_id) for rel in relationships]


def _build_graph(boxes, edges):
    graph = nx.DiGraph()
    for index, box in enumerate(boxes):
        graph.add_node(box.id, index=index)
    for source, target in edges:
        if source == target or source not in graph or target not in graph:
            continue
        graph.add_edge(source, target)
    return graph


def _break_cycles(graph, index):
    """Returns an acyclic copy of graph: edges found as DFS back edges are reversed."""
    def ordered_successors(node):
        return iter(sorted(graph.successors(node), key=index.get))

    state = {}  # 1 = on the DFS stack, 2 = finished
    back_edges = set()
    for root in sorted(graph.nodes, key=index.get):
        if root in state:
            continue
        state[root] = 1
        stack = [(root, ordered_successors(root))]
        while stack:
            node, children = stack[-1]
            for child in children:
                if state.get(child) == 1:
                    back_edges.add((node, child))
                elif child not in state:
                    state[child] = 1
                    stack.append((child, ordered_successors(child)))
                    break
            else:
                state[node] = 2
                stack.pop()

    dag = nx.DiGraph()
    dag.add_nodes_from(graph.nodes(data=True))
    for source, target in graph.edges:
        if (source, target) in back_edges:
            dag.add_edge(target, source)
        else:
            dag.add_edge(source, target)
    if back_edges:
        logger.debug("Reversed %d edges to break cycles", len(back_edges))
    return dag


def _assign_ranks(dag, index):
    """Longest-path ranking: every table sits one rank right of its furthest predecessor."""
    ranks = {}
    for node in nx.lexicographical_topological_sort(dag, key=index.get):
        ranks[node] = max((ranks[pred] + 1 for pred in dag.predecessors(node)), default=0)
    return ranks


def _build_layers(component, dag, ranks, index):
    """
    Groups a component's nodes by rank, inserting dummy nodes on edges that span
    more than one rank. Returns (layers, up_neighbors, down_neighbors).
    """
    layers = {}
    up_neighbors = {}
    down_neighbors = {}
    sort_keys = {}

    for node in component:
        layers.setdefault(ranks[node], []).append(node)
        up_neighbors[node] = []
        down_neighbors[node] = []
        sort_keys[node] = (index[node], 0, 0)

    for source, target in sorted(dag.edges(component), key=lambda e: (index[e[0]], index[e[1]])):
        previous = source
        for rank in range(ranks[source] + 1, ranks[target]):
            dummy = ("dummy", source, target, rank)
            layers.setdefault(rank, []).append(dummy)
            up_neighbors[dummy] = []
            down_neighbors[dummy] = []
            sort_keys[dummy] = (index[source], 1, index[target])
            down_neighbors[previous].append(dummy)
            up_neighbors[dummy].append(previous)
            previous = dummy
        down_neighbors[previous].append(target)
        up_neighbors[target].append(previous)

    for rank in layers:
        layers[rank].sort(key=sort_keys.get)
    return [layers[rank] for rank in sorted(layers)], up_neighbors, down_neighbors


def _count_crossings(upper, lower, down_neighbors):
    lower_pos = {node: i for i, node in enumerate(lower)}
    segments = [(i, lower_pos[child]) for i, node in enumerate(upper) for child in down_neighbors[node]]
    crossings = 0
    for a in range(len(segments)):
        for b in range(a + 1, len(segments)):
            if (segments[a][0] - segments[b][0]) * (segments[a][1] - segments[b][1]) < 0:
                crossings += 1
    return crossings


def _total_crossings(layers, down_neighbors):
    return sum(_count_crossings(layers[i], layers[i + 1], down_neighbors) for i in range(len(layers) - 1))


def _barycenter_order(layer, fixed_layer, neighbors):
    fixed_pos = {node: i for i, node in enumerate(fixed_layer)}
    current_pos = {node: i for i, node in enumerate(layer)}

    def barycenter(node):
        adjacent = [fixed_pos[other] for other in neighbors[node] if other in fixed_pos]
        if not adjacent:
            return current_pos[node]
        return sum(adjacent) / len(adjacent)

    return sorted(layer, key=lambda node: (barycenter(node), current_pos[node]))


def _reduce_crossings(layers, up_neighbors, down_neighbors, sweeps):
    best = [list(layer) for layer in layers]
    best_crossings = _total_crossings(best, down_neighbors)
    current = [list(layer) for layer in layers]

    for sweep in range(sweeps):
        if best_crossings == 0:
            break
        if sweep % 2 == 0:
            for i in range(1, len(current)):
                current[i] = _barycenter_order(current[i], current[i - 1], up_neighbors)
        else:
            for i in range(len(current) - 2, -1, -1):
                current[i] = _barycenter_order(current[i], current[i + 1], down_neighbors)
        crossings = _total_crossings(current, down_neighbors)
        if crossings < best_crossings:
            best = [list(layer) for layer in current]
            best_crossings = crossings
    return best


def _place_component(layers, sizes, origin_x, origin_y, node_sep, rank_sep, edge_sep):
    """Assigns top-left coordinates; returns (positions, component_height)."""
    def is_dummy(node):
        return isinstance(node, tuple)

    rank_widths = [max((sizes[n][0] for n in layer if not is_dummy(n)), default=0) for layer in layers]

    layer_slots = []
    for layer in layers:
        offsets = []
        cursor = 0
        previous = None
        for node in layer:
            if previous is not None:
                cursor += node_sep if not is_dummy(previous) and not is_dummy(node) else edge_sep
            offsets.append(cursor)
            cursor += 0 if is_dummy(node) else sizes[node][1]
            previous = node
        layer_slots.append((offsets, cursor))

    component_height = max((height for _, height in layer_slots), default=0)

    positions = {}
    rank_x = origin_x
    for rank, layer in enumerate(layers):
        offsets, layer_height = layer_slots[rank]
        top = origin_y + (component_height - layer_height) / 2
        for node, offset in zip(layer, offsets):
            if is_dummy(node):
                continue
            width = sizes[node][0]
            positions[node] = (rank_x + (rank_widths[rank] - width) / 2, top + offset)
        rank_x += rank_widths[rank] + rank_sep
    return positions, component_height


def layout_tables(boxes, edges, pinned=None,
                  node_sep=constants.DEFAULT_NODE_SEP,
                  rank_sep=constants.DEFAULT_RANK_SEP,
                  edge_sep=constants.DEFAULT_EDGE_SEP,
                  component_gap=constants.DEFAULT_COMPONENT_GAP,
                  grid_size=constants.GRID_SIZE):
    """
    Computes top-left positions for boxes (LayoutBox list) linked by directed
    (source_id, target_id) edges. Returns {box_id: QPointF} in input order.

    Boxes listed in pinned ({box_id: QPointF}) keep their position; the rest are
    laid out to the right of the pinned boxes. Output is deterministic for a
    given input order.
    """
    pinned = pinned or {}
    sizes = {box.id: (box.width, box.height) for box in boxes}
    free_boxes = [box for box in boxes if box.id not in pinned]

    origin_x, origin_y = constants.LAYOUT_ORIGIN_X, constants.LAYOUT_ORIGIN_Y
    pinned_boxes = [box for box in boxes if box.id in pinned]
    if pinned_boxes:
        origin_x = max(pinned[box.id].x() + box.width for box in pinned_boxes) + rank_sep
        origin_y = min(pinned[box.id].y() for box in pinned_boxes)

    graph = _build_graph(free_boxes, edges)
    index = {box.id: i for i, box in enumerate(free_boxes)}
    dag = _break_cycles(graph, index)
    ranks = _assign_ranks(dag, index)

    components = sorted(
        (sorted(component, key=index.get) for component in nx.weakly_connected_components(dag)),
        key=lambda component: index[component[0]],
    )

    placed = {}
    component_top = origin_y
    for component in components:
        layers, up_neighbors, down_neighbors = _build_layers(component, dag, ranks, index)
        layers = _reduce_crossings(layers, up_neighbors, down_neighbors, constants.CROSSING_REDUCTION_SWEEPS)
        positions, height = _place_component(layers, sizes, origin_x, component_top, node_sep, rank_sep, edge_sep)
        placed.update(positions)
        component_top += height + component_gap

    # Snapping moves a box by at most half a grid cell, so it is only safe
    # when every gap is wider than one cell.
    snap = grid_size and min(node_sep, rank_sep, edge_sep, component_gap) > grid_size

    result = {}
    for box in boxes:
        if box.id in pinned:
            result[box.id] = QPointF(pinned[box.id])
            continue
        x, y = placed[box.id]
        if snap:
            x, y = snap_to_grid(x, grid_size), snap_to_grid(y, grid_size)
        result[box.id] = QPointF(x, y)

    logger.debug("Laid out %d tables (%d pinned) in %d components",
                 len(free_boxes), len(pinned_boxes), len(components))
    return result


def apply_layout(tables, relationships, pinned_ids=(), **spacing):
    """Runs layout_tables over Table objects and writes the positions into them."""
    width = spacing.pop("table_width", constants.DEFAULT_TABLE_WIDTH)
    pinned = {table.id: table.pos() for table in tables if table.id in pinned_ids}
    positions = layout_tables(boxes_for_tables(tables, width), edges_for_relationships(relationships),
                              pinned=pinned, **spacing)
    for table in tables:
        table.set_pos(positions[table.id])
    return positions
