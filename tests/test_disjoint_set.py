from thundersnail.disjoint_set import DisjointSetNode


def test_disjoint_set_source_case():
    maxn = 100
    nodes = [DisjointSetNode(1, i, i + 1) for i in range(maxn)]
    for i in range(maxn):
        assert nodes[i].find() is nodes[i]
        nodes[i].join(nodes[0])
        if i > 0:
            assert nodes[i].find() is nodes[i - 1].find()
        root = nodes[i].find()
        assert root.tuple_id_count == i + 1
        assert root.max_link_addr_count == i * (i + 1) // 2
        assert root.hash_addr_count == (i + 2) * (i + 1) // 2


def test_new_node_is_its_own_root_with_zero_counts():
    node = DisjointSetNode()
    assert node.find() is node
    assert (node.tuple_id_count, node.max_link_addr_count, node.hash_addr_count) == (0, 0, 0)


def test_join_with_same_set_keeps_counts():
    a = DisjointSetNode(2, 3, 4)
    b = DisjointSetNode(1, 1, 1)
    a.join(b)
    b.join(a)
    a.join(a)
    root = a.find()
    assert root is b
    assert (root.tuple_id_count, root.max_link_addr_count, root.hash_addr_count) == (3, 4, 5)


def test_path_compression_on_long_chain():
    nodes = [DisjointSetNode(1) for _ in range(5000)]
    for prev, nxt in zip(nodes, nodes[1:]):
        prev.join(nxt)
    root = nodes[0].find()
    assert root is nodes[-1]
    assert root.tuple_id_count == 5000
    assert all(node.parent is root for node in nodes)