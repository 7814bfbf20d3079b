import pytest

STATUS_V2 = """\
TITLE,OpenVPN 2.5.1 x86_64-pc-linux-gnu [SSL (OpenSSL)] [LZO] [LZ4] [EPOLL] [MH/PKTINFO] [AEAD]
TIME,Thu Nov 27 10:30:45 2025,1732704645
HEADER,CLIENT_LIST,Common Name,Real Address,Virtual Address,Virtual IPv6 Address,Bytes Received,Bytes Sent,Connected Since,Connected Since (time_t),Username,Client ID,Peer ID,Data Channel Cipher
CLIENT_LIST,user1,192.168.1.100:54321,10.8.0.2,,1048576,2097152,Thu Nov 27 09:30:45 2025,1732700645,user1,0,0,AES-256-GCM
CLIENT_LIST,alice,203.0.113.50:12345,10.8.0.6,,5242880,10485760,Thu Nov 27 08:15:30 2025,1732696530,alice,1,1,AES-256-GCM
HEADER,ROUTING_TABLE,Virtual Address,Common Name,Real Address,Last Ref,Last Ref (time_t)
ROUTING_TABLE,10.8.0.2,user1,192.168.1.100:54321,Thu Nov 27 10:30:45 2025,1732704645
ROUTING_TABLE,10.8.0.6,alice,203.0.113.50:12345,Thu Nov 27 10:30:44 2025,1732704644
GLOBAL_STATS,Max bcast/mcast queue length,0
END
"""

STATUS_V3 = STATUS_V2.replace(",", "\t")

STATUS_V1 = """\
user1,192.168.1.100:54321,1048576,2097152,Thu Nov 27 09:30:45 2025
alice,203.0.113.50:12345,5242880,10485760,Thu Nov 27 08:15:30 2025
bob,198.51.100.25:33456,15728640,31457280,Wed Nov 26 22:45:00 2025
"""


@pytest.fixture
def write_file(tmp_path):
    def write(name, content):
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return str(path)

    return write
