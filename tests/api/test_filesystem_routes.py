"""Integration tests for file system routes.

These tests verify the behavior of the /fs endpoints:
- GET /fs/tree, /fs/resolve, /fs/children, /fs/nodes/{id}, /fs/validate
- POST /fs/nodes - Create a file or directory
- PATCH /fs/nodes/{id} - Rename / update metadata
- PUT /fs/nodes/{id}/content - Replace content
- POST /fs/nodes/{id}/move and /copy
- DELETE /fs/nodes/{id}
- POST /fs/bind, /fs/unbind, /fs/resync
"""

from tests.api.helpers import make_create_request, node_id_at


class TestReadRoutes:
    """Tests for the read-only file system endpoints."""

    def test_tree(self, client_with_workspace):
        """Test that GET /fs/tree returns the nested demo tree."""
        client, _ = client_with_workspace

        response = client.get("/fs/tree")

        assert response.status_code == 200
        data = response.json()
        assert data["root"]["path"] == "/"
        assert [c["name"] for c in data["root"]["children"]] == [
            "home", "etc", "var", "tmp", "bin",
        ]
        assert data["bound_root"] is None

    def test_resolve(self, client_with_workspace):
        """Test that GET /fs/resolve handles absolute, relative and ~ paths."""
        client, _ = client_with_workspace

        absolute = client.get("/fs/resolve", params={"path": "/home/user/README.md"})
        relative = client.get("/fs/resolve", params={"path": "README.md", "cwd": "/home/user"})
        home = client.get("/fs/resolve", params={"path": "~"})

        assert absolute.json()["id"] == relative.json()["id"]
        assert absolute.json()["path"] == "/home/user/README.md"
        assert "content" not in absolute.json()
        assert home.json()["name"] == "user"

    def test_resolve_missing(self, client_with_workspace):
        """Test that a missing path returns 404."""
        client, _ = client_with_workspace

        response = client.get("/fs/resolve", params={"path": "/nope"})

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_children(self, client_with_workspace):
        """Test that GET /fs/children lists a directory in order."""
        client, _ = client_with_workspace

        response = client.get("/fs/children", params={"path": "/etc"})

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["config.json"]

    def test_children_of_file(self, client_with_workspace):
        """Test that listing a file's children returns 400."""
        client, _ = client_with_workspace

        response = client.get("/fs/children", params={"path": "/etc/config.json"})

        assert response.status_code == 400
        assert response.json()["kind"] == "not_a_directory"

    def test_get_node_includes_content(self, client_with_workspace):
        """Test that GET /fs/nodes/{id} includes the content."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/etc/config.json")

        response = client.get(f"/fs/nodes/{node_id}")

        assert response.status_code == 200
        assert response.json()["content"].startswith("{")
        assert response.json()["size"] == len(response.json()["content"].encode("utf-8"))

    def test_get_unknown_node(self, client_with_workspace):
        """Test that an unknown id returns 404."""
        client, _ = client_with_workspace

        assert client.get("/fs/nodes/unknown").status_code == 404

    def test_validate(self, client_with_workspace):
        """Test that the demo tree validates cleanly."""
        client, _ = client_with_workspace

        response = client.get("/fs/validate")

        assert response.json() == {"valid": True, "errors": []}


class TestCreateNode:
    """Tests for POST /fs/nodes."""

    def test_create_by_parent_path(self, client_with_workspace):
        """Test creating a file under a parent path."""
        client, manager = client_with_workspace

        response = client.post(
            "/fs/nodes",
            json=make_create_request("notes.txt", parent_path="~", content="hi"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["path"] == "/home/user/notes.txt"
        assert data["size"] == 2
        assert manager.vfs.get_node(data["id"]).content == "hi"

    def test_create_by_parent_id(self, client_with_workspace):
        """Test creating a directory under a parent id."""
        client, _ = client_with_workspace
        parent_id = node_id_at(client, "/tmp")

        response = client.post(
            "/fs/nodes", json=make_create_request("build", kind="directory", parent_id=parent_id)
        )

        assert response.status_code == 201
        assert response.json()["kind"] == "directory"

    def test_create_collision(self, client_with_workspace):
        """Test that a sibling name collision returns 409."""
        client, _ = client_with_workspace

        response = client.post(
            "/fs/nodes", json=make_create_request("README.md", parent_path="/home/user")
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Already Exists"

    def test_create_requires_exactly_one_parent(self, client_with_workspace):
        """Test that giving both or neither parent fields is rejected with 422."""
        client, _ = client_with_workspace

        both = client.post(
            "/fs/nodes",
            json={"name": "x", "kind": "file", "parent_id": "root", "parent_path": "/"},
        )
        neither = client.post("/fs/nodes", json={"name": "x", "kind": "file"})

        assert both.status_code == 422
        assert neither.status_code == 422

    def test_create_invalid_name(self, client_with_workspace):
        """Test that a name containing a separator returns 400."""
        client, _ = client_with_workspace

        response = client.post("/fs/nodes", json=make_create_request("a/b"))

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_name"


class TestMutateNode:
    """Tests for PATCH, PUT content, move, copy and DELETE."""

    def test_rename_and_metadata(self, client_with_workspace):
        """Test that PATCH renames and updates metadata in one call."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/home/user/script.js")

        response = client.patch(
            f"/fs/nodes/{node_id}", json={"name": "app.js", "tags": ["web"], "pinned": True}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == node_id
        assert data["path"] == "/home/user/app.js"
        assert data["tags"] == ["web"]
        assert data["pinned"] is True

    def test_set_content(self, client_with_workspace):
        """Test that PUT content replaces the content and size."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/etc/config.json")

        response = client.put(f"/fs/nodes/{node_id}/content", json={"content": "{}"})

        assert response.status_code == 200
        assert response.json()["size"] == 2
        assert client.get(f"/fs/nodes/{node_id}").json()["content"] == "{}"

    def test_set_content_on_directory(self, client_with_workspace):
        """Test that writing content to a directory returns 400."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/etc")

        response = client.put(f"/fs/nodes/{node_id}/content", json={"content": "x"})

        assert response.status_code == 400
        assert response.json()["kind"] == "is_a_directory"

    def test_move(self, client_with_workspace):
        """Test moving a file into another directory keeps its id."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/etc/config.json")
        target = node_id_at(client, "/tmp")

        response = client.post(f"/fs/nodes/{node_id}/move", json={"parent_id": target})

        assert response.status_code == 200
        assert response.json()["id"] == node_id
        assert response.json()["path"] == "/tmp/config.json"

    def test_move_into_descendant(self, client_with_workspace):
        """Test that moving a directory into its own subtree returns 409."""
        client, _ = client_with_workspace
        home = node_id_at(client, "/home")
        documents = node_id_at(client, "/home/user/Documents")

        response = client.post(f"/fs/nodes/{home}/move", json={"parent_id": documents})

        assert response.status_code == 409
        assert response.json()["kind"] == "invalid_move"
        assert client.get("/fs/validate").json()["valid"] is True

    def test_copy(self, client_with_workspace):
        """Test that copying returns a new node with a fresh id."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/home/user/README.md")
        target = node_id_at(client, "/tmp")

        response = client.post(
            f"/fs/nodes/{node_id}/copy", json={"parent_id": target, "name": "README.bak"}
        )

        assert response.status_code == 201
        assert response.json()["id"] != node_id
        assert response.json()["path"] == "/tmp/README.bak"

    def test_delete_non_empty_requires_recursive(self, client_with_workspace):
        """Test that DELETE on a non-empty directory needs ?recursive=true."""
        client, _ = client_with_workspace
        node_id = node_id_at(client, "/etc")

        refused = client.delete(f"/fs/nodes/{node_id}")
        deleted = client.delete(f"/fs/nodes/{node_id}", params={"recursive": True})

        assert refused.status_code == 409
        assert refused.json()["kind"] == "not_empty"
        assert deleted.status_code == 200
        assert deleted.json() == {"status": "deleted", "message": "Deleted /etc"}
        assert client.get("/fs/resolve", params={"path": "/etc"}).status_code == 404

    def test_delete_root(self, client_with_workspace):
        """Test that the root cannot be deleted."""
        client, _ = client_with_workspace

        response = client.delete("/fs/nodes/root", params={"recursive": True})

        assert response.status_code == 400


class TestBinding:
    """Tests for POST /fs/bind, /fs/unbind and /fs/resync."""

    def test_bind_real_directory(self, client_with_workspace, tmp_path):
        """Test binding a temporary directory and writing through to it."""
        client, _ = client_with_workspace
        (tmp_path / "hello.txt").write_text("hello", encoding="utf-8")

        response = client.post("/fs/bind", json={"root_path": str(tmp_path)})

        assert response.status_code == 200
        assert client.get("/fs/tree").json()["bound_root"] == str(tmp_path)
        created = client.post("/fs/nodes", json=make_create_request("new.txt", content="x"))
        assert created.status_code == 201
        assert (tmp_path / "new.txt").read_text(encoding="utf-8") == "x"

    def test_bind_missing_directory(self, client_with_workspace, tmp_path):
        """Test that binding a missing directory returns 502 and keeps the tree."""
        client, _ = client_with_workspace

        response = client.post("/fs/bind", json={"root_path": str(tmp_path / "missing")})

        assert response.status_code == 502
        assert response.json()["kind"] == "bridge_unavailable"
        assert client.get("/fs/resolve", params={"path": "/home/user"}).status_code == 200

    def test_resync_requires_binding(self, client_with_workspace):
        """Test that resync on an unbound workspace returns 400."""
        client, _ = client_with_workspace

        assert client.post("/fs/resync").status_code == 400

    def test_unbind(self, client_with_workspace, tmp_path):
        """Test that unbind reports the previous root."""
        client, _ = client_with_workspace
        client.post("/fs/bind", json={"root_path": str(tmp_path)})

        response = client.post("/fs/unbind")

        assert response.json()["message"] == f"Unbound from {tmp_path}"
        assert client.post("/fs/unbind").json()["message"] == "Workspace was not bound"
