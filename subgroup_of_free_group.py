from typing import (
    TYPE_CHECKING,
    Dict,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)
from free_group import (
    FreeGroup,
    FreeGroupElement,
    FreeGroupGenerator,
)
from utils import Cached, cached_value, instance_cache, purestaticmethod

if TYPE_CHECKING:
    from homomorphism import FreeGroupHomomorphism


class Vertex:
    idx = 0

    def __init__(self, label: FreeGroupElement):
        # The label is a word leading from the base vertex to this one.
        self.label = label
        self.idx = Vertex.idx
        Vertex.idx += 1
        self.forward_edges: Dict[FreeGroupGenerator, Edge] = {}
        self.backward_edges: Dict[FreeGroupGenerator, Edge] = {}

    def delete(self):
        if self.forward_edges or self.backward_edges:
            raise ValueError("Cannot delete vertex with edges")

    def observe_direction(
        self, gen: FreeGroupGenerator, sign: int
    ) -> Optional[Tuple["Edge", "Vertex"]]:
        if sign == 1:
            edge = self.forward_edges.get(gen)
            if edge is None:
                return None
            return edge, edge.target
        else:
            edge = self.backward_edges.get(gen)
            if edge is None:
                return None
            return edge, edge.source

    def observe_direction_violent(
        self, gen: FreeGroupGenerator, sign: int
    ) -> Tuple["Edge", "Vertex"]:
        # Creates the edge when it is missing.
        dir = self.observe_direction(gen, sign)
        if dir is not None:
            return dir
        if sign == 1:
            new_vertex = Vertex(self.label * gen)
            edge = Edge(self, gen, new_vertex)
        else:
            new_vertex = Vertex(self.label * ~gen)
            edge = Edge(new_vertex, gen, self)
        return edge, new_vertex

    def walk_edge(self, gen: FreeGroupGenerator, sign: int) -> Optional["Vertex"]:
        dir = self.observe_direction(gen, sign)
        return None if dir is None else dir[1]

    def walk_word(self, word: FreeGroupElement) -> Optional["Vertex"]:
        vertex = self
        for gen, s in word.letters():
            dir = vertex.observe_direction(gen, s)
            if dir is None:
                return None
            vertex = dir[1]
        return vertex

    def walk_word_violent(self, word: FreeGroupElement) -> "Vertex":
        vertex = self
        for gen, s in word.letters():
            _edge, vertex = vertex.observe_direction_violent(gen, s)
        return vertex

    def __lt__(self, other: "Vertex") -> bool:
        return self.label < other.label

    def __hash__(self) -> int:
        return hash(self.idx)

    def __repr__(self) -> str:
        return repr(self.label)


class Edge:
    idx = 0

    def __init__(self, source: Vertex, gen: FreeGroupGenerator, target: Vertex):
        self.source = source
        self.gen = gen
        self.target = target
        self.idx = Edge.idx
        Edge.idx += 1

        if (
            self.source.forward_edges.get(self.gen) is not None
            or self.target.backward_edges.get(self.gen) is not None
        ):
            raise ValueError(f"Edge {self} would make the graph unfolded.")
        self.source.forward_edges[self.gen] = self
        self.target.backward_edges[self.gen] = self

    def delete(self):
        if not (
            self.source.forward_edges.pop(self.gen) is self
            and self.target.backward_edges.pop(self.gen) is self
        ):
            raise ValueError(f"Edge {self} was not attached to its endpoints.")

    def __hash__(self) -> int:
        return hash(self.idx)

    def __repr__(self) -> str:
        return f"{self.source} -- {self.gen} --> {self.target}"


class SubgroupOfFreeGroup(Cached):
    """
    A finitely generated subgroup of a free group, stored as its folded
    Stallings graph.

    Finite-index subgroups have complete graphs whose vertices are the right
    cosets; this is how the translation groups of triangle-group quotients are
    represented, as preimages in the free group on the triangle generators.
    """

    # The graph representation is private.
    def __init__(self, free_group: FreeGroup, code: str):
        if code != "From SubgroupOfFreeGroup._new":
            raise RuntimeError("Do not use this directly.")
        self.free_group = free_group
        self._identity_vertex = Vertex(free_group.identity())

        super().__init__()

    @purestaticmethod
    def _new(free_group: FreeGroup):
        return SubgroupOfFreeGroup(free_group, code="From SubgroupOfFreeGroup._new")

    @cached_value
    def _vertices(self) -> Set[Vertex]:
        res = set((self._identity_vertex,))
        unchecked = set((self._identity_vertex,))
        while unchecked:
            vertex = unchecked.pop()
            for edge in vertex.forward_edges.values():
                if not edge.target in res:
                    unchecked.add(edge.target)
                    res.add(edge.target)
            for edge in vertex.backward_edges.values():
                if not edge.source in res:
                    unchecked.add(edge.source)
                    res.add(edge.source)
        return res

    @cached_value
    def _edges(self) -> Set[Edge]:
        res: Set[Edge] = set()
        for vertex in self._vertices():
            for edge in vertex.forward_edges.values():
                res.add(edge)
        return res

    def _push_word(self, word: FreeGroupElement):
        self.flush()
        vertex = self._identity_vertex.walk_word_violent(word)

        # Fold the end of the new loop onto the base vertex, recursively.
        glues = [(vertex, self._identity_vertex)]

        while glues:
            v0, v1 = glues.pop()
            if v0 == v1:
                continue

            if v0.label < v1.label:
                v0, v1 = v1, v0

            for gen, edge in list(v0.forward_edges.items()):
                edge.delete()
                v1_next = v1.walk_edge(gen, 1)

                if edge.target == v0:
                    # A loop at v0 becomes a loop at v1.
                    v1_prev = v1.backward_edges.get(gen)
                    if v1_next is not None:
                        glues.append((v1, v1_next))
                    if v1_prev is not None:
                        glues.append((v1_prev.source, v1))
                    if v1_prev is None and v1_next is None:
                        Edge(v1, gen, v1)
                else:
                    if v1_next is None:
                        Edge(v1, gen, edge.target)
                    else:
                        glues.append((edge.target, v1_next))

            for gen, edge in list(v0.backward_edges.items()):
                edge.delete()
                v1_prev = v1.walk_edge(gen, -1)

                if v1_prev is None:
                    Edge(edge.source, gen, v1)
                else:
                    glues.append((edge.source, v1_prev))

            v0.delete()
            for i, pair in list(enumerate(glues)):
                if pair[0] == pair[1] == v0:
                    glues[i] = (v1, v1)
                elif v0 in pair:
                    other = pair[1 - pair.index(v0)]
                    glues[i] = (other, v1)

    def _relabel(self):
        # Gives every vertex its shortlex-minimal label, which fixes a spanning tree.
        uncleared_vertices = self._vertices().copy()

        while uncleared_vertices:
            v = uncleared_vertices.pop()
            for edge in v.forward_edges.values():
                suggestion = edge.source.label * edge.gen
                if suggestion < edge.target.label:
                    edge.target.label = suggestion
                    uncleared_vertices.add(edge.target)
            for edge in v.backward_edges.values():
                suggestion = edge.target.label * ~edge.gen
                if suggestion < edge.source.label:
                    edge.source.label = suggestion
                    uncleared_vertices.add(edge.source)

    @cached_value
    def _cycle_generators(self) -> Dict[Edge, FreeGroupElement]:
        self._relabel()
        return {
            edge: value
            for edge in self._edges()
            if not (
                value := edge.source.label * edge.gen * ~edge.target.label
            ).is_identity()
        }

    @cached_value
    def gens(self) -> Tuple[FreeGroupElement, ...]:
        return tuple(sorted(self._cycle_generators().values()))

    def signed_gens(self) -> List[FreeGroupElement]:
        return [g**s for g in self.gens() for s in (-1, 1)]

    def rank(self) -> int:
        return len(self.gens())

    @cached_value
    def _labelled(self) -> bool:
        self._relabel()
        return True

    def coset_label(self, elem: FreeGroupElement) -> FreeGroupElement:
        # The label of the coset H * elem; only total on finite-index subgroups.
        vertex = self._identity_vertex.walk_word(elem)
        if vertex is None:
            raise ValueError(f"The element {elem} leaves the graph of {self}")
        self._labelled()
        return vertex.label

    def contains_element(self, elem: FreeGroupElement) -> bool:
        return self._identity_vertex.walk_word(elem) is self._identity_vertex

    @instance_cache
    def contains_subgroup(self, other: "SubgroupOfFreeGroup") -> bool:
        for gen in other.gens():
            if not self.contains_element(gen):
                return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubgroupOfFreeGroup):
            return False
        if self.free_group != other.free_group:
            return False
        return self.contains_subgroup(other) and other.contains_subgroup(self)

    def __repr__(self) -> str:
        return f"Subgroup of {self.free_group} with free basis {self.gens()}"

    @purestaticmethod
    def from_relations(
        free_group: FreeGroup, relations: List[FreeGroupElement]
    ) -> "SubgroupOfFreeGroup":
        for relation in relations:
            if relation.free_group != free_group:
                raise ValueError(f"Relation {relation} not in free group {free_group}")

        res = SubgroupOfFreeGroup._new(free_group)
        for relation in relations:
            res._push_word(relation)

        return res

    def copy(self) -> "SubgroupOfFreeGroup":
        return SubgroupOfFreeGroup.from_relations(self.free_group, list(self.gens()))

    @purestaticmethod
    def _full_subgroup(free_group: FreeGroup) -> "SubgroupOfFreeGroup":
        return SubgroupOfFreeGroup.from_relations(free_group, list(free_group.gens()))

    def _as_subgroup(
        self, other: "SubgroupOfFreeGroup | FreeGroup"
    ) -> "SubgroupOfFreeGroup":
        if isinstance(other, FreeGroup):
            other = SubgroupOfFreeGroup._full_subgroup(other)
        if self.free_group != other.free_group:
            raise ValueError("Cannot compare subgroups of different free groups.")
        if not other.contains_subgroup(self):
            raise ValueError("The other subgroup must contain this subgroup.")
        return other

    def is_trivial(self) -> bool:
        return len(self._vertices()) == 1 and len(self._edges()) == 0

    @instance_cache
    def has_finite_index_in(self, other: "SubgroupOfFreeGroup | FreeGroup") -> bool:
        other = self._as_subgroup(other)
        for vertex in other._vertices():
            projected_vertex = self._identity_vertex.walk_word(vertex.label)
            assert projected_vertex is not None
            if not (
                len(projected_vertex.forward_edges) == len(vertex.forward_edges)
                and len(projected_vertex.backward_edges) == len(vertex.backward_edges)
            ):
                return False
        return True

    @purestaticmethod
    def intersect_subgroups(
        free_group: FreeGroup, graphs: Sequence["SubgroupOfFreeGroup"]
    ) -> "SubgroupOfFreeGroup":
        # The component of the base point in the product graph.
        for graph in graphs:
            if graph.free_group != free_group:
                raise ValueError(f"{graph} is not a subgroup of {free_group}")
        res = SubgroupOfFreeGroup._new(free_group)

        base = tuple(g._identity_vertex for g in graphs)
        mapping_back = {base: res._identity_vertex}
        uncleared = [(res._identity_vertex, base)]
        while uncleared:
            vertex, images = uncleared.pop()
            for gen in free_group.gens():
                for s in (-1, 1):
                    if vertex.observe_direction(gen, s) is not None:
                        continue
                    individual_images = tuple(v.walk_edge(gen, s) for v in images)
                    if any(v is None for v in individual_images):
                        continue

                    if individual_images in mapping_back:
                        new_vertex = mapping_back[individual_images]
                    else:
                        new_vertex = Vertex(vertex.label * gen**s)
                        mapping_back[individual_images] = new_vertex
                        uncleared.append((new_vertex, individual_images))

                    if s == 1:
                        Edge(vertex, gen, new_vertex)
                    else:
                        Edge(new_vertex, gen, vertex)

        return res

    def image(self, hom: "FreeGroupHomomorphism") -> "SubgroupOfFreeGroup":
        if hom.domain != self.free_group:
            raise ValueError("The homomorphism is not defined on this free group.")
        return SubgroupOfFreeGroup.from_relations(
            hom.codomain, [hom(gen) for gen in self.gens()]
        )

    @instance_cache
    def is_normal_in(self, other: "SubgroupOfFreeGroup | FreeGroup") -> bool:
        other = self._as_subgroup(other)
        for gen in self.gens():
            for a in other.gens():
                if not self.contains_element(gen.conjugate(a)):
                    return False
                if not self.contains_element(gen.conjugate(~a)):
                    return False
        return True

    @instance_cache
    def normalization_in(
        self, other: "SubgroupOfFreeGroup | FreeGroup"
    ) -> "SubgroupOfFreeGroup":
        # Beware the word problem: this only stops when the closure has finite index.
        other = self._as_subgroup(other)

        res = self.copy()
        gens = other.signed_gens()

        while True:
            normal = True
            for a in res.gens():
                for b in gens:
                    a_conj = a.conjugate(b)
                    if not res.contains_element(a_conj):
                        res._push_word(a_conj)
                        normal = False
            if normal:
                return res

    @instance_cache
    def right_coset_representatives_in(
        self, other: "SubgroupOfFreeGroup | FreeGroup"
    ) -> List[FreeGroupElement]:
        other = self._as_subgroup(other)
        if not self.has_finite_index_in(other):
            raise ValueError(
                "The other subgroup must have finite index over this subgroup."
            )

        self._relabel()
        return sorted(
            v.label for v in self._vertices() if other.contains_element(v.label)
        )

    @instance_cache
    def index_in(self, other: "SubgroupOfFreeGroup | FreeGroup") -> int:
        return len(self.right_coset_representatives_in(other))

    def index(self) -> int:
        return self.index_in(self.free_group)
