"""
Page-context JavaScript evaluated through a `RemoteExecutionPort`.

Each script is a single-argument arrow function; multi-value inputs are passed
as one object and destructured on the page side. The scripts depend on
`window.Store` and `window.WWebJS`, which the configured store scripts expose
once the user is logged in.
"""

from __future__ import annotations

# Exposed host callback names.
QR_CHANGED = "qrChanged"
ON_ADD_MESSAGE = "onAddMessageEvent"
ON_CHANGE_MESSAGE = "onChangeMessageEvent"
ON_CHANGE_MESSAGE_TYPE = "onChangeMessageTypeEvent"
ON_MESSAGE_ACK = "onMessageAckEvent"
ON_MESSAGE_MEDIA_UPLOADED = "onMessageMediaUploadedEvent"
ON_REMOVE_MESSAGE = "onRemoveMessageEvent"
ON_APP_STATE_CHANGED = "onAppStateChangedEvent"
ON_INCOMING_CALL = "onIncomingCall"

# Session bootstrap.

SEED_LEGACY_SESSION = """(session) => {
    localStorage.clear();
    localStorage.setItem('WABrowserId', session.WABrowserId);
    localStorage.setItem('WASecretBundle', session.WASecretBundle);
    localStorage.setItem('WAToken1', session.WAToken1);
    localStorage.setItem('WAToken2', session.WAToken2);
}"""

READ_LEGACY_SESSION = """() => ({
    WABrowserId: localStorage.getItem('WABrowserId'),
    WASecretBundle: localStorage.getItem('WASecretBundle'),
    WAToken1: localStorage.getItem('WAToken1'),
    WAToken2: localStorage.getItem('WAToken2'),
})"""

OBSERVE_QR = """(selectors) => {
    const qrContainer = document.querySelector(selectors.container);
    window.qrChanged(qrContainer.dataset.ref);

    const obs = new MutationObserver((muts) => {
        muts.forEach((mut) => {
            if (mut.type === 'attributes' && mut.attributeName === 'data-ref') {
                window.qrChanged(mut.target.dataset.ref);
            } else if (mut.type === 'childList') {
                const retry = document.querySelector(selectors.retryButton);
                if (retry) retry.click();
            }
        });
    });
    obs.observe(qrContainer.parentElement, {
        subtree: true,
        childList: true,
        attributes: true,
        attributeFilter: ['data-ref'],
    });
}"""

IS_MD_BACKEND = "() => Boolean(window.Store.Features.features.MD_BACKEND)"

UNREGISTER_SERVICE_WORKERS = """async () => {
    const registrations = await navigator.serviceWorker.getRegistrations();
    for (const registration of registrations) {
        await registration.unregister();
    }
}"""

CLIENT_INFO = "() => ({ ...window.Store.Conn.serialize(), wid: window.Store.User.getMeUser() })"

WWEB_VERSION = "() => window.Debug.VERSION"

SET_MESSAGE_HISTORY = """(disabled) => {
    window.WWebJS.disableMessageHistory = disabled;
}"""

INSTALL_STORE_LISTENERS = """() => {
    const model = (msg) => window.WWebJS.getMessageModel(msg);
    window.Store.Msg.on('add', (msg) => { window.onAddMessageEvent(model(msg)); });
    window.Store.Msg.on('change', (msg) => { window.onChangeMessageEvent(model(msg)); });
    window.Store.Msg.on('change:type', (msg) => { window.onChangeMessageTypeEvent(model(msg)); });
    window.Store.Msg.on('change:ack', (msg, ack) => { window.onMessageAckEvent(model(msg), ack); });
    window.Store.Msg.on('change:isUnsentMedia', (msg, unsent) => {
        window.onMessageMediaUploadedEvent(model(msg), unsent);
    });
    window.Store.Msg.on('remove', (msg) => { window.onRemoveMessageEvent(model(msg)); });
    window.Store.AppState.on('change:state', (_appState, state) => {
        window.onAppStateChangedEvent(state);
    });
    window.Store.Call.on('add', (call) => { window.onIncomingCall(call); });
}"""

# Session commands.

LOGOUT = "() => window.Store.AppState.logout()"

TAKEOVER = "() => window.Store.AppState.takeover()"

GET_STATE = "() => window.Store.AppState.state"

RESET_STATE = "() => { window.Store.AppState.phoneWatchdog.shiftTimer.forceRunNow(); }"

PRESENCE_AVAILABLE = "() => window.Store.PresenceUtils.sendPresenceAvailable()"

PRESENCE_UNAVAILABLE = "() => window.Store.PresenceUtils.sendPresenceUnavailable()"

# Messaging.

SEND_SEEN = "(chatId) => window.WWebJS.sendSeen(chatId)"

TO_STICKER_DATA = """async ({ attachment, metadata }) => {
    return await window.WWebJS.toStickerData(attachment, metadata);
}"""

SEND_MESSAGE = """async ({ chatId, content, options, sendSeen }) => {
    const chatWid = window.Store.WidFactory.createWid(chatId);
    if (!window.Store.Chat._find) {
        window.Store.Chat._find = (e) => {
            const target = window.Store.Chat.get(e);
            return Promise.resolve(target ? target : { id: e });
        };
    }
    const chat = await window.Store.Chat.find(chatWid);
    const msg = await window.WWebJS.sendMessage(chat, content, options, sendSeen);
    return msg.serialize();
}"""

SEARCH_MESSAGES = """async ({ query, page, count, remote }) => {
    const { messages } = await window.Store.Msg.search(query, page, count, remote);
    return messages.map((msg) => window.WWebJS.getMessageModel(msg));
}"""

# Chats, contacts, labels.

GET_CHATS = "async () => await window.WWebJS.getChats()"

GET_CHAT = "async (chatId) => await window.WWebJS.getChat(chatId)"

GET_CONTACTS = "() => window.WWebJS.getContacts()"

GET_CONTACT = "(contactId) => window.WWebJS.getContact(contactId)"

GET_BLOCKED_CONTACTS = """() => {
    const ids = window.Store.Blocklist.models.map((a) => a.id._serialized);
    return Promise.all(ids.map((id) => window.WWebJS.getContact(id)));
}"""

ARCHIVE_CHAT = """async ({ chatId, archive }) => {
    const chat = await window.Store.Chat.get(chatId);
    await window.Store.Cmd.archiveChat(chat, archive);
    return chat.archive;
}"""

PIN_STATE = """({ chatId, maxPinCount }) => {
    const chat = window.Store.Chat.get(chatId);
    const models = window.Store.Chat.models;
    return {
        pinned: Boolean(chat && chat.pin),
        total: models.length,
        pins: models.slice(0, maxPinCount).map((c) => Boolean(c.pin)),
    };
}"""

SET_PIN = """async ({ chatId, pin }) => {
    const chat = window.Store.Chat.get(chatId);
    await window.Store.Cmd.pinChat(chat, pin);
    return pin;
}"""

MUTE_CHAT = """async ({ chatId, timestamp }) => {
    const chat = await window.Store.Chat.get(chatId);
    await chat.mute.mute(timestamp, true);
}"""

UNMUTE_CHAT = """async (chatId) => {
    const chat = await window.Store.Chat.get(chatId);
    await window.Store.Cmd.muteChat(chat, false);
}"""

MARK_CHAT_UNREAD = """async (chatId) => {
    const chat = await window.Store.Chat.get(chatId);
    await window.Store.Cmd.markChatUnread(chat, true);
}"""

GET_LABELS = "async () => window.WWebJS.getLabels()"

GET_LABEL = "async (labelId) => window.WWebJS.getLabel(labelId)"

GET_CHAT_LABELS = "async (chatId) => window.WWebJS.getChatLabels(chatId)"

GET_CHAT_IDS_BY_LABEL = """async (labelId) => {
    const label = window.Store.Label.get(labelId);
    return label.labelItemCollection.models
        .filter((item) => item.parentType === 'Chat')
        .map((item) => item.parentId);
}"""

# Groups and invites.

GET_INVITE_INFO = "(inviteCode) => window.Store.Wap.groupInviteInfo(inviteCode)"

ACCEPT_INVITE = """async (inviteCode) => {
    const chatId = await window.Store.Invite.sendJoinGroupViaInvite(inviteCode);
    return chatId._serialized;
}"""

ACCEPT_GROUP_V4_INVITE = """async ({ groupId, fromId, inviteCode, inviteCodeExp, toId }) => {
    return await window.Store.Wap.acceptGroupV4Invite(groupId, fromId, inviteCode, inviteCodeExp, toId);
}"""

CREATE_GROUP = """async ({ name, participantIds }) => {
    const participantWids = participantIds.map((p) => window.Store.WidFactory.createWid(p));
    const id = window.Store.genId();
    return await window.Store.GroupUtils.sendCreateGroup(name, participantWids, undefined, id);
}"""

# Profile and numbers.

SET_STATUS = "async (status) => await window.Store.Wap.sendSetStatus(status)"

SET_DISPLAY_NAME = "async (displayName) => await window.Store.Wap.setPushname(displayName)"

GET_PROFILE_PIC = """async (contactId) => {
    const wid = window.Store.WidFactory.createWid(contactId);
    const pic = await window.Store.getProfilePicFull(wid);
    return pic ? pic.eurl : null;
}"""

IS_REGISTERED_USER = """async (id) => {
    if (window.Store.Features.features.MD_BACKEND) {
        let handler = (new window.Store.USyncQuery).withContactProtocol();
        handler = handler.withUser((new window.Store.USyncUser).withPhone(id), handler.withBusinessProtocol(), 1);
        const result = await handler.execute();
        return result.list[0].contact.type == 'in';
    }
    const result = await window.Store.Wap.queryExist(id);
    return result.jid !== undefined;
}"""

GET_NUMBER_ID = "async (numberId) => window.WWebJS.getNumberId(numberId)"

GET_FORMATTED_NUMBER = "async (numberId) => window.Store.NumberInfo.formattedPhoneNumber(numberId)"

GET_COUNTRY_CODE = "async (numberId) => window.Store.NumberInfo.findCC(numberId)"
