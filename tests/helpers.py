"""Mirror-rendered documents used across the test suite."""

MIRROR_A = "https://mirror-a.example"
MIRROR_B = "https://mirror-b.example"
PROXY = "https://proxy.example/fetch?quest="

# 2024-01-05 15:04 UTC
TS_JAN_5 = 1704467040
# 2024-01-06 09:30 UTC
TS_JAN_6 = 1704533400


def timeline_item(
    post_id: str,
    text: str,
    date_title: str = "Jan 5, 2024 · 3:04 PM UTC",
    handle: str = "@jack",
    extra: str = "",
    stats: tuple = ("12", "1.5K", "2M"),
) -> str:
    replies, retweets, likes = stats
    return f"""
    <div class="timeline-item">
      <a class="tweet-link" href="/{handle.lstrip('@')}/status/{post_id}#m"></a>
      <div class="tweet-body">
        {extra}
        <div class="tweet-header">
          <a class="fullname" href="/jack">Jack</a>
          <a class="username" href="/jack">{handle}</a>
          <span class="tweet-date"><a href="/jack/status/{post_id}#m" title="{date_title}">Jan 5</a></span>
        </div>
        <div class="tweet-content media-body">{text}</div>
        <div class="tweet-stats">
          <span class="tweet-stat"><div class="icon-container"><span class="icon-comment"></span> {replies}</div></span>
          <span class="tweet-stat"><div class="icon-container"><span class="icon-retweet"></span> {retweets}</div></span>
          <span class="tweet-stat"><div class="icon-container"><span class="icon-heart"></span> {likes}</div></span>
        </div>
      </div>
    </div>
    """


def timeline_page(*items: str) -> str:
    return f"""
    <html><head><title>Jack (@jack) | mirror</title></head>
    <body>
      <div class="timeline-header">profile</div>
      <div class="timeline">{''.join(items)}</div>
    </body></html>
    """


DETAIL_PAGE = """
<html><head><title>Jack on mirror</title></head>
<body>
<div class="conversation">
  <div class="main-thread">
    <div class="before-tweet thread-line">
      <div class="timeline-item">
        <a class="tweet-link" href="/alice/status/90#m"></a>
        <a class="username" href="/alice">@alice</a>
        <div class="tweet-content media-body">What are you building?</div>
      </div>
    </div>
    <div class="main-tweet">
      <div class="timeline-item">
        <div class="tweet-body">
          <div class="replying-to">Replying to <a href="/alice">@alice</a></div>
          <div class="tweet-header">
            <a class="fullname" href="/jack">Jack</a>
            <a class="username" href="/jack">@jack</a>
          </div>
          <div class="tweet-content media-body">just setting up my mirror</div>
          <div class="attachments">
            <div class="attachment image"><img src="/pic/media%2Fone.jpg"></div>
            <div class="attachment image"><img src="/pic/media%2Fone.jpg"></div>
          </div>
          <p class="tweet-published"></p>
          <span class="tweet-date"><a href="/jack/status/100#m" title="Jan 5, 2024 · 3:04 PM UTC">Jan 5</a></span>
          <div class="tweet-stats">
            <span class="tweet-stat"><div class="icon-container"><span class="icon-comment"></span> 3</div></span>
            <span class="tweet-stat"><div class="icon-container"><span class="icon-retweet"></span> 4</div></span>
            <span class="tweet-stat"><div class="icon-container"><span class="icon-heart"></span> 1,204</div></span>
          </div>
        </div>
      </div>
    </div>
  </div>
  <div class="replies">
    <div class="reply thread thread-line">
      <div class="timeline-item">
        <a class="tweet-link" href="/bob/status/110#m"></a>
        <a class="username" href="/bob">@bob</a>
        <div class="tweet-content media-body">Nice one</div>
      </div>
    </div>
  </div>
</div>
</body></html>
"""


