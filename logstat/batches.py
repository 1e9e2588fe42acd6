"""Where batches of raw CDN log lines come from."""

# Standard libraries
import gzip
import io

# Installed packages
import boto3

BUCKET = "rubygems-fastly-download-logs"


def open_logfile(logfilename):
    if logfilename.endswith("gz"):
        return gzip.open(logfilename, 'rt', encoding='utf-8', errors='replace')
    return open(logfilename, 'r', encoding='utf-8', errors='replace')


class FileBatchSource:
    """Local log files, one batch per file."""

    def __init__(self, paths):
        self.paths = list(paths)

    def list_batches(self):
        return list(self.paths)

    def read_lines(self, batch):
        with open_logfile(batch) as logfile:
            yield from logfile


class S3BatchSource:
    """Log objects in an S3 bucket whose keys start with `prefix`."""

    def __init__(self, bucket=BUCKET, prefix="", client=None):
        self.bucket = bucket
        self.prefix = prefix
        self.s3 = client or boto3.client("s3")

    def list_batches(self):
        paginator = self.s3.get_paginator("list_objects_v2")
        keys = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
            keys.extend(o["Key"] for o in page.get("Contents", []))
        return keys

    def read_lines(self, batch):
        obj = self.s3.get_object(Bucket=self.bucket, Key=batch)
        body = obj["Body"].read()
        if batch.endswith("gz"):
            body = gzip.GzipFile(fileobj=io.BytesIO(body)).read()
        yield from body.decode("utf-8", errors="replace").splitlines()
