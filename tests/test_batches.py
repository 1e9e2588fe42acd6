"""Tests for logstat/batches.py"""

import gzip
import io
from unittest import mock

from logstat.batches import BUCKET, FileBatchSource, S3BatchSource

LINES = ["first line\n", "second line\n"]


class TestFileBatchSource:

    def test_plain_file(self, tmp_path):
        path = tmp_path / "fastly.log"
        path.write_text("".join(LINES))
        source = FileBatchSource([str(path)])
        assert source.list_batches() == [str(path)]
        assert list(source.read_lines(str(path))) == LINES

    def test_gzip_file(self, tmp_path):
        path = tmp_path / "fastly.log.gz"
        with gzip.open(path, "wt") as f:
            f.write("".join(LINES))
        source = FileBatchSource([str(path)])
        assert list(source.read_lines(str(path))) == LINES

    def test_undecodable_bytes_are_replaced(self, tmp_path):
        path = tmp_path / "fastly.log"
        path.write_bytes(b"first line\ngarbage \xff\xfe line\nsecond line\n")
        lines = list(FileBatchSource([str(path)]).read_lines(str(path)))
        assert lines == ["first line\n", "garbage \ufffd\ufffd line\n", "second line\n"]

    def test_undecodable_gzip_bytes_are_replaced(self, tmp_path):
        path = tmp_path / "fastly.log.gz"
        with gzip.open(path, "wb") as f:
            f.write(b"first line\n\xff\n")
        lines = list(FileBatchSource([str(path)]).read_lines(str(path)))
        assert lines == ["first line\n", "\ufffd\n"]


def make_client(pages, body=b""):
    client = mock.Mock()
    client.get_paginator.return_value.paginate.return_value = pages
    client.get_object.return_value = {"Body": io.BytesIO(body)}
    return client


class TestS3BatchSource:

    def test_lists_keys_across_pages(self):
        client = make_client([
            {"Contents": [{"Key": "production/2015-08-24T12:26:00.000-a.log"}]},
            {"Contents": [{"Key": "production/2015-08-24T12:26:00.000-b.log"}]},
            {},
        ])
        source = S3BatchSource(prefix="production/", client=client)
        assert source.list_batches() == ["production/2015-08-24T12:26:00.000-a.log",
                                         "production/2015-08-24T12:26:00.000-b.log"]
        client.get_paginator.assert_called_once_with("list_objects_v2")
        client.get_paginator.return_value.paginate.assert_called_once_with(
            Bucket=BUCKET, Prefix="production/")

    def test_reads_plain_object(self):
        client = make_client([], body=b"first line\nsecond line\n")
        source = S3BatchSource(bucket="logs", client=client)
        assert list(source.read_lines("a.log")) == ["first line", "second line"]
        client.get_object.assert_called_once_with(Bucket="logs", Key="a.log")

    def test_reads_gzipped_object(self):
        client = make_client([], body=gzip.compress(b"first line\nsecond line\n"))
        source = S3BatchSource(client=client)
        assert list(source.read_lines("a.log.gz")) == ["first line", "second line"]

    def test_default_client(self):
        with mock.patch("boto3.client") as boto_client:
            source = S3BatchSource()
        boto_client.assert_called_once_with("s3")
        assert source.s3 is boto_client.return_value
