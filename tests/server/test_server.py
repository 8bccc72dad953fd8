import trinoduck


def test_query_request(server: dict) -> None:
    connection_string = f"Host={server['host']};Port={server['port']};User={server['user']}"
    with trinoduck.connect(connection_string) as conn, conn.cursor() as cur:
        cur.execute("select 'hello world'")
        result = cur.fetchone()
        assert result[0] == "hello world"


def test_paged_result_over_http(server: dict) -> None:
    with trinoduck.connect(**server) as conn:
        conn.execute_non_query("CREATE TABLE smoke_numbers (n INTEGER)")
        conn.execute_non_query(
            "INSERT INTO smoke_numbers VALUES (1), (2), (3), (4), (5), (6), (7)"
        )

        with conn.execute("SELECT n FROM smoke_numbers ORDER BY n") as result:
            values = [row[0] for row in result]

    assert values == [1, 2, 3, 4, 5, 6, 7]
