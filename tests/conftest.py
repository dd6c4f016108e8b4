"""
Shared fixtures: saved tracker pages and a fake page fetcher
"""

import pytest
from bs4 import BeautifulSoup

TTG_INDEX = """
<html><body>
<table>
<tr><td class="bottom">
  欢迎回来，<b><a href="https://totheglory.im/userdetails.php?id=151907">alice</a></b>
  <font color="green">上传量 : </font> <font color="black"><a href="/log.php" title="4,400,128.37 MB">4.196 TB</a></font>
  <font color="darkred">下载量 :</font> <font color="black"><a href="/log.php" title="1,558,484.04 MB">1.486 TB</a></font>
  <font color="1900D1">分享率 :</font> <font color="#000000">2.823</font>
  <img alt="做种中" src="/pic/seeding.png"/><span class="smallfont">10</span>
  <img alt="下载中" src="/pic/leeching.png"/><span class="smallfont">0</span>
  积分 : <a href="https://totheglory.im/mybonus.php">908728.22</a>
</td></tr>
<tr><td><a href="messages.php?action=viewmailbox&amp;box=1"><img alt="收件箱" src="/pic/inbox.gif"/></a> 96 (3 <b>新</b>)</td></tr>
</table>
</body></html>
"""

TTG_USERDETAILS = """
<html><body>
<b><a href="https://totheglory.im/userdetails.php?id={user_id}">alice</a></b>
<table>
<tr><td class="rowhead">注册日期</td><td align="left">2019-09-03 23:02:35 (6 年前)</td></tr>
<tr><td class="rowhead">等级</td><td align="left">PetaByte</td></tr>
</table>
</body></html>
"""

TTG_MYBONUS = """
<html><body>
<table><tr><td class="rowhead">总计</td><td>27.64 分</td></tr></table>
</body></html>
"""

TTG_DETAILS = """
<html><body>
<h1>[电影] Some.Movie.2024.1080p.BluRay</h1>
<a class="bookmark" href="javascript: bookmark(12345,0);">收藏</a>
<table>
<tr><td class="heading">尺寸</td><td>4.37 GB (4,692,251,033 字节)</td></tr>
<tr><td class="heading">优惠</td><td>
  <img src="./details_files/ico_free.gif" class="topic">
  <font color="red">到期时间为2026-01-30 16:32</font>
</td></tr>
</table>
</body></html>
"""

TTG_BROWSE = """
<html><body>
<table class="torrents">
<tr><td class="colhead">类型</td><td class="colhead">名称</td></tr>
<tr>
  <td class="rowfollow"><img alt="电影" src="/pic/cat_movie.png"></td>
  <td class="rowfollow"><table class="torrentname"><tr><td class="embedded">
    <a href="details.php?id=111&amp;hit=1">Movie.A.2024</a>
    <img src="/pic/ico_free.gif">
    <font class="free"><span title="2026-02-08 22:30:00">剩余 3天</span></font><br>
    <span>副标题 A</span>
  </td></tr></table></td>
  <td class="rowfollow">3</td>
  <td class="rowfollow"><span title="2026-01-01 10:00:00">1天</span></td>
  <td class="rowfollow">4.37<br>GB</td>
  <td class="rowfollow">12</td>
  <td class="rowfollow">3</td>
  <td class="rowfollow">1,024</td>
</tr>
<tr>
  <td class="rowfollow"><img alt="剧集" src="/pic/cat_tv.png"></td>
  <td class="rowfollow"><table class="torrentname"><tr><td class="embedded">
    <a href="details.php?id=222&amp;hit=1">Show.B.S01</a><br>
    <span>副标题 B</span>
  </td></tr></table></td>
  <td class="rowfollow">0</td>
  <td class="rowfollow"><span title="2026-01-02 11:00:00">2天</span></td>
  <td class="rowfollow">150.5<br>MB</td>
  <td class="rowfollow">0</td>
  <td class="rowfollow">1</td>
  <td class="rowfollow">5</td>
</tr>
</table>
</body></html>
"""


class FakeFetcher:
    """Serves canned pages by path and records every request."""

    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.calls: list[tuple[str, dict | None]] = []

    async def __call__(self, base_url, path, params=None, cookie=""):
        self.calls.append((path, params))
        return BeautifulSoup(self.pages[path], "html.parser")


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.fixture
def ttg_user_pages():
    return {
        "/index.php": TTG_INDEX,
        "/userdetails.php": TTG_USERDETAILS.format(user_id="151907"),
        "/mybonus.php": TTG_MYBONUS,
    }
